"""Resolve (and generate when missing) translation bundles ahead of traffic."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from typing import Iterable, Sequence

from linguabundle.core.config import get_settings
from linguabundle.core.errors import LinguaBundleError
from linguabundle.services.resolver import TranslationResolver, create_translation_resolver


@dataclass(frozen=True)
class PrefetchOutcome:
    language: str
    namespace: str
    status: str
    keys: int = 0
    message: str = ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linguabundle-prefetch",
        description=(
            "Resolve translation bundles with the configured store and provider, "
            "generating and saving any bundle that does not exist yet."
        ),
    )
    parser.add_argument(
        "--language",
        "-l",
        action="append",
        required=True,
        help="Target language code (repeatable).",
    )
    parser.add_argument(
        "--namespace",
        "-n",
        action="append",
        help="Namespace to resolve (repeatable, default: DEFAULT_NAMESPACE).",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format for the report (default: table).",
    )
    return parser


def build_resolver() -> TranslationResolver:
    return create_translation_resolver(get_settings())


async def prefetch(
    resolver: TranslationResolver,
    languages: Sequence[str],
    namespaces: Sequence[str],
) -> list[PrefetchOutcome]:
    outcomes: list[PrefetchOutcome] = []
    for namespace in namespaces:
        for language in languages:
            generated_before = resolver.generation_count
            try:
                bundle = await resolver.get_translations(language, namespace)
            except LinguaBundleError as exc:
                outcomes.append(
                    PrefetchOutcome(language, namespace, "error", message=exc.message)
                )
                continue
            status = "generated" if resolver.generation_count > generated_before else "stored"
            outcomes.append(PrefetchOutcome(language, namespace, status, keys=len(bundle)))
    return outcomes


def render_table(outcomes: Sequence[PrefetchOutcome]) -> str:
    headers = ("Language", "Namespace", "Status", "Keys", "Message")
    rows = [
        (item.language, item.namespace, item.status, str(item.keys), item.message)
        for item in outcomes
    ]
    widths = [
        max([len(header)] + [len(row[index]) for row in rows])
        for index, header in enumerate(headers)
    ]

    def format_row(values: Iterable[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()

    lines = [format_row(headers), "  ".join("-" * width for width in widths)]
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines)


def _outcomes_to_json(outcomes: Sequence[PrefetchOutcome]) -> str:
    payload = [
        {
            "language": item.language,
            "namespace": item.namespace,
            "status": item.status,
            "keys": item.keys,
            "message": item.message,
        }
        for item in outcomes
    ]
    return json.dumps(payload, ensure_ascii=False, indent=2)


async def _run(languages: Sequence[str], namespaces: Sequence[str], format_name: str) -> int:
    try:
        resolver = build_resolver()
    except LinguaBundleError as exc:
        print(f"Configuration error: {exc.message}", file=sys.stderr)
        return 2
    outcomes = await prefetch(resolver, languages, namespaces or [resolver.default_namespace])

    if format_name == "json":
        print(_outcomes_to_json(outcomes))
    else:
        print(render_table(outcomes))

    return 1 if any(item.status == "error" for item in outcomes) else 0


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = asyncio.run(_run(args.language, args.namespace or [], args.format))
    raise SystemExit(exit_code)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
