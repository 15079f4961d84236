"""Verify that the service's environment configuration is complete and unchanged.

Commands:

``check``
    Load ``AppSettings`` from the given ``.env`` file and list any missing or
    malformed variables by their environment name.
``record``
    Run ``check`` and store the file's SHA256 as a baseline.
``verify``
    Run ``check`` and compare the file against the recorded baseline, so an
    accidental edit is caught before the service restarts with it.

Example::

    python -m scripts.check_env record --env-file /srv/enrichment/.env \
        --hash-file /srv/enrichment/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import (
    AppSettings,
    JasperSettings,
    RegistrationDBSettings,
    ShipBobSettings,
    ShopifySettings,
    _load_env_file,
)

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

_PREFIXES = {
    model.__name__: model.model_config.get("env_prefix", "")
    for model in (ShipBobSettings, ShopifySettings, RegistrationDBSettings, JasperSettings)
}


def missing_variables(exc: ValidationError) -> list[str]:
    """Translate a settings ``ValidationError`` into environment variable names."""
    prefix = _PREFIXES.get(exc.title, "")
    names = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        names.append(f"{prefix}{field}".upper())
    return names


def _file_digest(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]


def _record(env_file: Path, hash_file: Path) -> int:
    digest = _file_digest(env_file)
    hash_file.write_text(f"{digest}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({digest})")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"No baseline at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _file_digest(env_file)
    if expected != actual:
        print(
            f"{env_file} changed since the baseline was recorded\n"
            f"  expected: {expected}\n"
            f"  actual:   {actual}",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR
    print("Environment checksum OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate enrichment service settings and detect .env drift."
    )
    parser.add_argument("command", choices=("check", "record", "verify"))
    parser.add_argument(
        "--env-file",
        default=Path(".env"),
        type=Path,
        help="Environment file to validate (default: ./.env).",
    )
    parser.add_argument(
        "--hash-file",
        type=Path,
        help="Checksum baseline location; required for record and verify.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command != "check" and args.hash_file is None:
        parser.error(f"--hash-file is required for {args.command}")

    env_file: Path = args.env_file
    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed; missing or invalid: "
            + ", ".join(missing_variables(exc)),
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    print("Settings OK.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
