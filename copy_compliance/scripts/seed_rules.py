"""
CLI to seed (or re-seed) the default compliance rules into a JSON rule file.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from copy_compliance.compliance.guard import validate
from copy_compliance.compliance.rules import RuleStore
from copy_compliance.compliance.seed_rules import seed_rule_store
from copy_compliance.storage.rule_files import load_rules, save_rules


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed default ad-copy compliance rules.")
    parser.add_argument(
        "--rules-path",
        type=Path,
        default=Path("project_bundle") / "compliance_rules.json",
        help="Rule file to create or update (existing rules are kept, seeds upserted by name).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    store = RuleStore()
    if args.rules_path.exists():
        store.upsert_many(load_rules(args.rules_path))
        print(f"[seed] Loaded {len(store.snapshot())} existing rules from {args.rules_path}")

    snapshot = seed_rule_store(store)
    for rule in snapshot:
        unsafe = [pattern for pattern in rule.banned_patterns if not validate(pattern)]
        marker = "!" if unsafe else "✓"
        print(f"[seed] {marker} {rule.name}")
        for pattern in unsafe:
            print(f"[seed]     unsafe pattern will be skipped: {pattern!r}")

    save_rules(args.rules_path, snapshot)
    print(f"[seed] Wrote {len(snapshot)} rules to {args.rules_path}")


if __name__ == "__main__":
    main()
