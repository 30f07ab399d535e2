import argparse
import json

from posh_knowledge.search import build_engine
from posh_knowledge.settings import configure_logging, load_settings
from posh_knowledge.tracing import configure_tracing_from_settings


def main() -> None:
    """Run one multi-corpus search and print the JSON response."""
    parser = argparse.ArgumentParser(description="Semantic search across the PoSH knowledge corpora.")
    parser.add_argument("query")
    parser.add_argument("--source", action="append", dest="sources", help="act, rules, case_law or playbooks")
    parser.add_argument("--max-results", type=int, default=5)
    args = parser.parse_args()

    embedding_settings, store_settings, search_settings = load_settings()
    configure_logging(search_settings.log_level)
    configure_tracing_from_settings(search_settings)
    engine = build_engine(embedding_settings, store_settings, search_settings)
    response = engine.search(args.query, sources=args.sources, max_results=args.max_results)
    print(json.dumps(response.to_dict(), indent=2))


if __name__ == "__main__":
    main()
