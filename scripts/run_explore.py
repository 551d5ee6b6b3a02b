import argparse
import json
import logging

from dom_xray.config import get_settings
from dom_xray.models import init_db
from dom_xray.orchestrator import MODES, run_exploration_blocking


def main():
    parser = argparse.ArgumentParser(description="Activate every interactive element on a page and record what appears")
    parser.add_argument("--url", default="", help="Page to explore (also the base URL for --html)")
    parser.add_argument("--html", default=None, help="Explore a local HTML file offline instead of a live page")
    parser.add_argument("--mode", choices=MODES, default="main")
    parser.add_argument("--no-persist", action="store_true", help="Print the payload instead of exporting it")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    settings = get_settings()
    if args.no_persist:
        settings.persist_output = False

    init_db()
    run, payload = run_exploration_blocking(args.url, args.mode, settings=settings, html_path=args.html)
    if not settings.persist_output:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    print(
        f"[explore] run={run.run_id} mode={run.mode} status={run.status} "
        f"records={run.record_count} combos={run.combo_count} artifact={run.artifact_key}"
    )


if __name__ == "__main__":
    main()
