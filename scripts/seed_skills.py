from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    # Allow running as: python scripts/seed_skills.py
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from skillhire.database import Base, SessionLocal, engine  # noqa: E402
from skillhire.models.skills import Skill  # noqa: E402


DEFAULT_SKILLS: list[dict[str, str]] = [
    {"name": "Python", "description": "General-purpose programming language"},
    {"name": "JavaScript", "description": "Language of the web platform"},
    {"name": "TypeScript", "description": "Typed superset of JavaScript"},
    {"name": "React", "description": "Component-based UI library"},
    {"name": "SQL", "description": "Querying and modelling relational data"},
    {"name": "Docker", "description": "Container packaging and runtime"},
    {"name": "Git", "description": "Distributed version control"},
    {"name": "REST API Design", "description": "Resource-oriented HTTP interfaces"},
    {"name": "Unit Testing", "description": "Automated tests for small units of code"},
    {"name": "Communication", "description": "Clear written and spoken communication"},
]


def _load_dataset(path: Path) -> list[dict[str, str]]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("dataset must be a JSON array of {name, description} objects or names")

    items: list[dict[str, str]] = []
    for entry in raw:
        if isinstance(entry, str):
            entry = {"name": entry}
        name = str((entry or {}).get("name") or "").strip()
        if name:
            items.append({"name": name, "description": str(entry.get("description") or "").strip()})
    return items


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the skill catalogue.")
    parser.add_argument("--dataset", default=None, help="Optional JSON file; defaults to a built-in list")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)

    items = _load_dataset(Path(args.dataset)) if args.dataset else DEFAULT_SKILLS

    inserted = 0
    with SessionLocal() as db:
        existing = {name.lower() for (name,) in db.query(Skill.name).all()}
        for item in items:
            if item["name"].lower() in existing:
                continue
            db.add(Skill(name=item["name"], description=item.get("description") or None))
            existing.add(item["name"].lower())
            inserted += 1
        db.commit()

    print(f"seeded skills: inserted={inserted} skipped={len(items) - inserted}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
