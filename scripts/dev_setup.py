"""Write a local .env for the organizer and create the snapshot table."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from novel_maker import create_app

# option dest -> .env variable
ENV_OPTIONS = {
    "secret_key": "SECRET_KEY",
    "grok_api_key": "GROK_API_KEY",
    "grok_api_base": "GROK_API_BASE",
    "grok_models": "GROK_MODEL_CANDIDATES",
    "database_url": "DATABASE_URL",
    "log_level": "LOG_LEVEL",
}
REDACTED = {"SECRET_KEY", "GROK_API_KEY"}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--env-path", type=Path, default=REPO_ROOT / ".env")
    for dest, variable in ENV_OPTIONS.items():
        parser.add_argument(f"--{dest.replace('_', '-')}", dest=dest, help=f"Value for {variable}.")
    parser.add_argument("--skip-db", action="store_true", help="Leave the database untouched.")
    return parser.parse_args(argv)


def merge_env(path: Path, updates: Dict[str, str]) -> Dict[str, str]:
    """Overlay ``updates`` on the variables already in ``path`` and rewrite it."""

    values: Dict[str, str] = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.partition("=")
            if sep and not key.lstrip().startswith("#"):
                values[key.strip()] = value.strip()
    values.update(updates)
    values.setdefault("FLASK_APP", "novel_maker:create_app")
    path.write_text("".join(f"{k}={v}\n" for k, v in sorted(values.items())), encoding="utf-8")
    return values


def _shown(key: str, value: str) -> str:
    if key in REDACTED and value:
        return value[:4] + "…" if len(value) > 8 else "***"
    return value


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    updates = {var: getattr(args, dest) for dest, var in ENV_OPTIONS.items() if getattr(args, dest)}
    values = merge_env(args.env_path, updates)

    print(f"Wrote {args.env_path}")
    for key, value in sorted(values.items()):
        print(f"  {key}={_shown(key, value)}")

    if not args.skip_db:
        # create_app loads .env and creates the snapshot table on startup
        create_app()
        print("Snapshot table ready.")


if __name__ == "__main__":
    main()
