"""Standalone HTML explorer for view graphs, using Cytoscape.js.

Turns a ``{nodes, links}`` view (overview, search or expansion result)
into a self-contained page with:
  - Force-directed layout (cose-bilkent)
  - Node coloring and shape by entity type
  - Node sizing by paper count
  - Arrowheads on unidirectional relationships only
  - Name search, type filter and a link confidence threshold
  - Click-to-inspect entity details and PNG export

Reference:
  Cytoscape.js: https://js.cytoscape.org/ (MIT)
  cose-bilkent: https://github.com/cytoscape/cytoscape.js-cose-bilkent
"""

from __future__ import annotations

import html
import json
import logging
from pathlib import Path
from typing import Any

from papergraph.graph.formatter import TYPE_COLORS
from papergraph.graph.models import EntityType

logger = logging.getLogger(__name__)

# Entity type → node shape
TYPE_SHAPES: dict[EntityType, str] = {
    EntityType.PROTEIN: "ellipse",
    EntityType.GENE: "round-rectangle",
    EntityType.DISEASE: "diamond",
    EntityType.DRUG: "hexagon",
    EntityType.ORGANISM: "octagon",
    EntityType.CELL_TYPE: "triangle",
    EntityType.TISSUE: "barrel",
    EntityType.PATHWAY: "star",
    EntityType.CONCEPT: "round-tag",
    EntityType.METHOD: "rectangle",
    EntityType.OTHER: "ellipse",
}

_MIN_NODE_PX = 20
_MAX_NODE_PX = 70


def view_to_cytoscape(view: dict[str, Any]) -> list[dict[str, Any]]:
    """Convert a ``{nodes, links}`` view into Cytoscape.js elements."""
    nodes = view.get("nodes", [])
    max_size = max((n.get("size", 0) for n in nodes), default=0) or 1

    elements: list[dict[str, Any]] = []
    for node in nodes:
        size = node.get("size", 0)
        elements.append({
            "data": {
                "id": node["id"],
                "label": node.get("name", node["id"]),
                "type": node.get("type", EntityType.OTHER.value),
                "color": node.get("color", TYPE_COLORS[EntityType.OTHER]),
                "papers": size,
                "confidence": node.get("confidence", 0.0),
                "px": _MIN_NODE_PX + (_MAX_NODE_PX - _MIN_NODE_PX) * size / max_size,
            },
            "group": "nodes",
        })

    for link in view.get("links", []):
        elements.append({
            "data": {
                "id": link.get("id") or f"{link['source']}-{link['predicate']}-{link['target']}",
                "source": link["source"],
                "target": link["target"],
                "label": link.get("predicate", "").replace("_", " "),
                "confidence": link.get("confidence", 0.0),
                "strength": link.get("strength", 0.5),
                "direction": link.get("direction", "unidirectional"),
            },
            "group": "edges",
        })

    return elements


def generate_graph_html(
    elements: list[dict[str, Any]],
    title: str = "Knowledge Graph",
    layout: str = "cose-bilkent",
    width: str = "100%",
    height: str = "100vh",
) -> str:
    """Render Cytoscape.js elements into a complete HTML page."""
    types_in_data = sorted({
        el["data"].get("type", EntityType.OTHER.value)
        for el in elements if el.get("group") == "nodes"
    })

    legend_items = ""
    for type_name in types_in_data:
        color = TYPE_COLORS[EntityType.parse(type_name)]
        legend_items += (
            f'<span class="legend-item"><span class="legend-dot" '
            f'style="background:{color}"></span>{type_name.replace("_", " ")}</span>\n'
        )

    return _HTML_TEMPLATE.format(
        title=html.escape(title),
        elements_json=json.dumps(elements, indent=2),
        layout=layout,
        width=width,
        height=height,
        legend_items=legend_items,
        style_rules=json.dumps(_build_cytoscape_style()),
    )


def save_graph_html(
    view: dict[str, Any],
    path: str | Path,
    title: str = "Knowledge Graph",
    **kwargs: Any,
) -> str:
    """Generate the explorer page for ``view`` and write it to ``path``."""
    elements = view_to_cytoscape(view)
    page = generate_graph_html(elements, title=title, **kwargs)
    path = Path(path)
    path.write_text(page, encoding="utf-8")
    logger.info("Saved graph explorer to %s (%d elements)", path, len(elements))
    return str(path)


def _build_cytoscape_style() -> list[dict[str, Any]]:
    """Cytoscape.js style array with type-based coloring and shapes."""
    styles: list[dict[str, Any]] = [
        {
            "selector": "node",
            "style": {
                "label": "data(label)",
                "text-valign": "bottom",
                "text-halign": "center",
                "font-size": "11px",
                "font-family": "Inter, system-ui, sans-serif",
                "color": "#eee",
                "text-outline-width": 2,
                "text-outline-color": "#1a1a1a",
                "background-color": "data(color)",
                "width": "data(px)",
                "height": "data(px)",
                "border-width": 2,
                "border-color": "#1a1a1a",
                "overlay-opacity": 0,
            },
        },
        {
            "selector": "node:selected",
            "style": {"border-width": 4, "border-color": "#00E5FF", "font-weight": "bold"},
        },
        {
            "selector": "edge",
            "style": {
                "label": "data(label)",
                "font-size": "9px",
                "color": "#bbb",
                "text-rotation": "autorotate",
                "line-color": "#607D8B",
                "target-arrow-color": "#607D8B",
                "target-arrow-shape": "triangle",
                "curve-style": "bezier",
                "width": "mapData(strength, 0, 1, 1, 5)",
                "opacity": "mapData(confidence, 0, 1, 0.3, 1)",
                "arrow-scale": 0.8,
                "overlay-opacity": 0,
            },
        },
        {
            "selector": 'edge[direction = "bidirectional"]',
            "style": {"target-arrow-shape": "none"},
        },
        {
            "selector": "edge:selected",
            "style": {"line-color": "#00E5FF", "target-arrow-color": "#00E5FF"},
        },
    ]

    for etype in EntityType:
        styles.append({
            "selector": f'node[type = "{etype.value}"]',
            "style": {
                "background-color": TYPE_COLORS[etype],
                "shape": TYPE_SHAPES[etype],
            },
        })

    return styles


# ---------------------------------------------------------------------------
# HTML template
# ---------------------------------------------------------------------------

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<script src="https://cdnjs.cloudflare.com/ajax/libs/cytoscape/3.28.1/cytoscape.min.js"></script>
<script src="https://cdnjs.cloudflare.com/ajax/libs/cytoscape-cose-bilkent/4.1.0/cytoscape-cose-bilkent.min.js"></script>
<style>
  html, body {{ margin: 0; height: 100%; }}
  body {{
    display: grid; grid-template-columns: 260px 1fr;
    font: 13px Inter, system-ui, sans-serif; background: #1a1a1a; color: #eee;
  }}
  aside {{
    background: #111; padding: 16px; overflow-y: auto;
    border-right: 1px solid #333; display: flex; flex-direction: column; gap: 12px;
  }}
  aside h1 {{ font-size: 15px; margin: 0; }}
  aside .muted {{ color: #888; font-size: 12px; }}
  aside input, aside select, aside button {{
    width: 100%; box-sizing: border-box; padding: 6px 8px;
    background: #222; color: #eee; border: 1px solid #444; border-radius: 4px;
  }}
  aside button {{ background: #7C4DFF; border-color: #7C4DFF; cursor: pointer; }}
  #graph {{ width: {width}; height: {height}; }}
  #legend {{ display: flex; flex-direction: column; gap: 4px; }}
  .legend-item {{ display: flex; align-items: center; gap: 6px; text-transform: capitalize; }}
  .legend-dot {{ width: 10px; height: 10px; border-radius: 50%; }}
  #entity {{ display: none; border-top: 1px solid #333; padding-top: 12px; }}
  #entity h2 {{ font-size: 14px; margin: 0 0 6px; }}
  #entity li {{ color: #bbb; margin: 2px 0; }}
</style>
</head>
<body>
<aside>
  <div>
    <h1>{title}</h1>
    <div class="muted" id="counts"></div>
  </div>
  <input type="text" id="find" placeholder="Find entity by name">
  <select id="type-filter"><option value="">Every entity type</option></select>
  <label class="muted">Link confidence &ge; <span id="threshold-value">0.00</span>
    <input type="range" id="threshold" min="0" max="1" step="0.05" value="0">
  </label>
  <button id="reset">Reset view</button>
  <button id="export">Download PNG</button>
  <div id="legend">{legend_items}</div>
  <div id="entity">
    <h2 id="entity-name"></h2>
    <ul id="entity-facts"></ul>
  </div>
</aside>
<div id="graph"></div>

<script>
const cy = cytoscape({{
  container: document.getElementById('graph'),
  elements: {elements_json},
  style: {style_rules},
  layout: {{
    name: '{layout}',
    animate: false,
    nodeDimensionsIncludeLabels: true,
    idealEdgeLength: 110,
    nodeRepulsion: 5500,
  }},
  minZoom: 0.1,
  maxZoom: 4,
}});

const $ = id => document.getElementById(id);
$('counts').textContent = cy.nodes().length + ' entities / ' + cy.edges().length + ' links';

[...new Set(cy.nodes().map(n => n.data('type')))].sort().forEach(t => {{
  $('type-filter').add(new Option(t.replace('_', ' '), t));
}});

function highlight(keep) {{
  cy.batch(() => {{
    cy.elements().style('opacity', 1);
    if (!keep) return;
    cy.nodes().filter(n => !keep(n)).style('opacity', 0.12);
    cy.edges().style('opacity', 0.12);
  }});
}}

$('find').oninput = e => {{
  const q = e.target.value.trim().toLowerCase();
  highlight(q ? n => n.data('label').toLowerCase().includes(q) : null);
}};

$('type-filter').onchange = e => {{
  const t = e.target.value;
  highlight(t ? n => n.data('type') === t : null);
}};

$('threshold').oninput = e => {{
  const min = Number(e.target.value);
  $('threshold-value').textContent = min.toFixed(2);
  cy.edges().forEach(edge => edge.style('display', edge.data('confidence') >= min ? 'element' : 'none'));
}};

cy.on('tap', 'node', e => {{
  const node = e.target;
  $('entity-name').textContent = node.data('label');
  const facts = [
    node.data('type').replace('_', ' '),
    node.data('papers') + ' paper(s)',
    'confidence ' + node.data('confidence'),
  ];
  node.connectedEdges().forEach(edge => {{
    const other = edge.source().same(node) ? edge.target() : edge.source();
    facts.push(edge.data('label') + ': ' + other.data('label'));
  }});
  $('entity-facts').replaceChildren(...facts.map(text => {{
    const li = document.createElement('li');
    li.textContent = text;
    return li;
  }}));
  $('entity').style.display = 'block';
}});

cy.on('tap', e => {{ if (e.target === cy) $('entity').style.display = 'none'; }});

$('reset').onclick = () => {{
  ['find', 'type-filter'].forEach(id => $(id).value = '');
  $('threshold').value = 0;
  $('threshold-value').textContent = '0.00';
  cy.edges().style('display', 'element');
  highlight(null);
  $('entity').style.display = 'none';
  cy.fit(undefined, 40);
}};

$('export').onclick = () => {{
  const link = document.createElement('a');
  link.href = cy.png({{ bg: '#1a1a1a', scale: 2, full: true }});
  link.download = 'knowledge-graph.png';
  link.click();
}};
</script>
</body>
</html>"""
