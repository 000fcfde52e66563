"""papergraph CLI — query a knowledge graph snapshot from the command line.

Usage:
    papergraph --snapshot kg.json graph --limit 50
    papergraph --snapshot kg.json search "p53" --type protein --max-distance 2
    papergraph --snapshot kg.json path ent-tp53 ent-mdm2 --max-hops 4
    papergraph --snapshot kg.json entities --type drug --page 2
    papergraph --snapshot kg.json visualize "BRCA1" -o brca1.html
    papergraph --snapshot kg.json serve --port 8000

Query results are printed as JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from papergraph.config.settings import settings
from papergraph.graph.engine import GraphQueryEngine
from papergraph.graph.errors import GraphQueryError
from papergraph.graph.store import InMemoryGraphStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="papergraph",
        description="papergraph — scientific paper knowledge graph explorer",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    parser.add_argument(
        "--snapshot", default=settings.SNAPSHOT_PATH,
        help="JSON snapshot with entities, relationships and papers",
    )

    subparsers = parser.add_subparsers(dest="command")

    # graph
    graph = subparsers.add_parser("graph", help="Overview of the best-connected entities")
    graph.add_argument("--limit", type=int, default=settings.GRAPH_LIMIT_DEFAULT)

    # search
    srch = subparsers.add_parser("search", help="Search and expand a neighborhood")
    srch.add_argument("query", help="Name or alias substring")
    srch.add_argument("--type", action="append", dest="types", help="Entity type filter")
    srch.add_argument("--max-distance", type=int, default=settings.DEFAULT_MAX_DISTANCE)

    # path
    path = subparsers.add_parser("path", help="Shortest path between two entities")
    path.add_argument("from_id", help="Source entity id")
    path.add_argument("to_id", help="Target entity id")
    path.add_argument("--max-hops", type=int, default=settings.DEFAULT_MAX_HOPS)

    # entities
    ents = subparsers.add_parser("entities", help="List entities")
    ents.add_argument("--type", help="Entity type filter")
    ents.add_argument("--search", help="Name/alias substring filter")
    ents.add_argument("--page", type=int, default=1)
    ents.add_argument("--limit", type=int, default=20)

    # visualize
    viz = subparsers.add_parser("visualize", help="Write a standalone HTML explorer")
    viz.add_argument("query", nargs="?", help="Search query (overview if omitted)")
    viz.add_argument("--type", action="append", dest="types", help="Entity type filter")
    viz.add_argument("--max-distance", type=int, default=settings.DEFAULT_MAX_DISTANCE)
    viz.add_argument("--limit", type=int, default=settings.GRAPH_LIMIT_DEFAULT)
    viz.add_argument("--output", "-o", default="knowledge-graph.html", help="Output file")

    # serve
    srv = subparsers.add_parser("serve", help="Start the HTTP API")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        engine = _load_engine(args.snapshot)
        if args.command == "graph":
            _print(engine.get_graph(args.limit))
        elif args.command == "search":
            _print(engine.search_graph(args.query, args.types, args.max_distance))
        elif args.command == "path":
            _print(engine.find_shortest_path(args.from_id, args.to_id, args.max_hops))
        elif args.command == "entities":
            _print(engine.list_entities(args.type, args.search, args.page, args.limit))
        elif args.command == "visualize":
            _cmd_visualize(engine, args)
        elif args.command == "serve":
            _cmd_serve(engine, args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except GraphQueryError as exc:
        logger.error("Error: %s", exc)
        if args.verbose:
            raise
        return 1
    return 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _load_engine(snapshot: str) -> GraphQueryEngine:
    if not snapshot:
        logger.warning("No snapshot given (--snapshot or PAPERGRAPH_SNAPSHOT_PATH); graph is empty")
        return GraphQueryEngine.from_store(InMemoryGraphStore())
    return GraphQueryEngine.from_store(InMemoryGraphStore.from_json_file(snapshot))


def _print(data: dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _cmd_visualize(engine: GraphQueryEngine, args: argparse.Namespace) -> None:
    """Write an HTML explorer for a search neighborhood or the overview."""
    from papergraph.graph.visualizer import save_graph_html

    if args.query:
        view = engine.search_graph(args.query, args.types, args.max_distance)
        title = f"Knowledge Graph: {args.query}"
    else:
        view = engine.get_graph(args.limit)
        title = "Knowledge Graph"

    if view.get("message"):
        print(view["message"], file=sys.stderr)
    path = save_graph_html(view, args.output, title=title)
    print(path)


def _cmd_serve(engine: GraphQueryEngine, args: argparse.Namespace) -> None:
    """Serve the HTTP API over the loaded snapshot."""
    import uvicorn

    from papergraph.api.app import create_app

    uvicorn.run(create_app(engine=engine), host=args.host, port=args.port)


if __name__ == "__main__":
    sys.exit(main())
