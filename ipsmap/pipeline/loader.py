"""Acquire raw sources from files or URLs and parse them into row lists."""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ipsmap.common.constants import SOURCE_NAMES
from ipsmap.common.errors import SourceShapeError, StageError
from ipsmap.common.fs import read_bytes, read_json, write_json
from ipsmap.common.http import HttpClient
from ipsmap.common.time_utils import elapsed_ms
from ipsmap.pipeline.normalizer import coerce_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSpec:
    name: str
    location: str
    format: str = "auto"

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))


def source_specs_from_config(sources_cfg: dict) -> list[SourceSpec]:
    return [
        SourceSpec(
            name=name,
            location=str(sources_cfg["sources"][name]["location"]),
            format=sources_cfg["sources"][name].get("format", "auto"),
        )
        for name in SOURCE_NAMES
    ]


def _detect_format(spec: SourceSpec, text: str) -> str:
    if spec.format != "auto":
        return spec.format
    suffix = spec.location.split("?", 1)[0].rsplit(".", 1)[-1].lower()
    if suffix in ("json", "csv"):
        return suffix
    return "json" if text.lstrip()[:1] in ("[", "{") else "csv"


def parse_source_bytes(spec: SourceSpec, payload: bytes) -> list[dict[str, Any]]:
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SourceShapeError(f"Source {spec.name} is not UTF-8 text") from exc

    if _detect_format(spec, text) == "csv":
        return coerce_rows(text, spec.name)
    try:
        parsed = json.loads(text)
    except ValueError as exc:
        raise SourceShapeError(f"Source {spec.name} is not valid JSON") from exc
    return coerce_rows(parsed, spec.name)


def fetch_source_bytes(spec: SourceSpec, client: HttpClient, base_dir: Path) -> bytes:
    if spec.is_remote:
        return client.get_bytes(spec.location)
    path = Path(spec.location)
    if not path.is_absolute():
        path = base_dir / path
    if not path.exists():
        raise StageError(f"Missing source file for {spec.name}: {path}")
    return read_bytes(path)


def load_source(spec: SourceSpec, client: HttpClient, base_dir: Path) -> list[dict[str, Any]]:
    started = time.perf_counter()
    rows = parse_source_bytes(spec, fetch_source_bytes(spec, client, base_dir))
    logger.debug("loaded %s: %d rows in %d ms", spec.name, len(rows), elapsed_ms(started))
    return rows


def _load_with_own_client(
    spec: SourceSpec,
    client_factory: Callable[[], HttpClient],
    base_dir: Path,
) -> list[dict[str, Any]]:
    with client_factory() as client:
        return load_source(spec, client, base_dir)


def load_all_sources(
    specs: list[SourceSpec],
    client_factory: Callable[[], HttpClient],
    base_dir: Path,
    *,
    max_workers: int | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Load every source concurrently, each over its own HTTP client.

    The first failure propagates as soon as it happens. Sources that have not
    started yet are cancelled and running ones are not waited for.
    """
    pool = ThreadPoolExecutor(max_workers=max_workers or len(specs) or 1)
    try:
        futures = [(spec.name, pool.submit(_load_with_own_client, spec, client_factory, base_dir)) for spec in specs]
        done, _ = wait([future for _, future in futures], return_when=FIRST_EXCEPTION)
        for name, future in futures:
            if future in done and future.exception() is not None:
                logger.debug("source %s failed, cancelling pending loads", name)
                future.result()
        return {name: future.result() for name, future in futures}
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def raw_snapshot_path(data_dir: Path, name: str) -> Path:
    return data_dir / "raw" / f"{name}.json"


def snapshot_sources(data_dir: Path, sources: dict[str, list[dict[str, Any]]], run_id: str) -> list[Path]:
    paths = []
    for name, rows in sources.items():
        path = raw_snapshot_path(data_dir, name)
        write_json(path, {"source": name, "run_id": run_id, "rows": rows})
        paths.append(path)
    return paths


def read_snapshots(data_dir: Path) -> dict[str, list[dict[str, Any]]]:
    sources = {}
    for name in SOURCE_NAMES:
        path = raw_snapshot_path(data_dir, name)
        if not path.exists():
            raise StageError(f"Missing raw snapshot for {name}: {path}")
        try:
            payload = read_json(path)
        except ValueError as exc:
            raise SourceShapeError(f"Raw snapshot for {name} is not valid JSON: {path}") from exc
        sources[name] = coerce_rows(payload, name)
    return sources
