# scripts/demo_signals.py
import argparse
import json
import os

from sigdispatch.core import log
from sigdispatch.core.metrics import snapshot_all
from sigdispatch.wire_config import build_from_file, describe

HERE = os.path.dirname(os.path.abspath(__file__))


def main():
    ap = argparse.ArgumentParser(description="Dispatch one signal through a configured receiver table")
    ap.add_argument("--config", default=os.getenv("SIGDISPATCH_CONFIG",
                    os.path.join(HERE, "..", "examples_app", "config", "signals.yaml")))
    ap.add_argument("--app-root", default=None)
    ap.add_argument("--signal", default="order.created")
    ap.add_argument("--sender", default="OrderService")
    ap.add_argument("--params", default='{"id": 42}', help="JSON payload")
    ap.add_argument("--metrics", action="store_true", help="print metrics snapshot at the end")
    args = ap.parse_args()

    log.setup()
    l = log.get("demo")

    app_root = args.app_root or os.path.join(os.path.dirname(os.path.abspath(args.config)), "..")
    dispatcher = build_from_file(args.config, app_root=app_root)
    l.info("receivers: %s", describe(dispatcher))

    params = json.loads(args.params)
    report = dispatcher.dispatch_report(args.signal, args.sender, params)
    for r in report.results:
        l.info("%-28s %s", r.descriptor.name, r.outcome.value)
    l.info("handled=%s invoked=%d", report.handled, report.invoked)

    if args.metrics:
        print(json.dumps(snapshot_all(), indent=2))


if __name__ == "__main__":
    main()
