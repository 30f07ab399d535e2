import argparse

from posh_knowledge.io_utils import load_records
from posh_knowledge.settings import configure_logging, load_settings
from posh_knowledge.vector_store import connect_store, corpus_collection, index_records


def main() -> None:
    """Load pre-embedded JSONL fixtures into the configured Chroma collections."""
    parser = argparse.ArgumentParser(description="Load corpus fixture files into the vector store.")
    parser.add_argument("--legal-sections", help="JSONL of act and rules sections")
    parser.add_argument("--case-law", help="JSONL of case law entries")
    parser.add_argument("--playbooks", help="JSONL of playbook entries")
    args = parser.parse_args()

    _, store_settings, search_settings = load_settings()
    configure_logging(search_settings.log_level)
    client = connect_store(store_settings)

    sources = [
        (args.legal_sections, "legal_sections", store_settings.legal_collection),
        (args.case_law, "case_law", store_settings.case_law_collection),
        (args.playbooks, "playbooks", store_settings.playbook_collection),
    ]
    for path, kind, collection_name in sources:
        if not path:
            continue
        count = index_records(corpus_collection(client, collection_name), load_records(path, kind))
        print(f"Loaded {count} {kind} records into {collection_name}")


if __name__ == "__main__":
    main()
