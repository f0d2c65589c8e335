from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .cache import FileStore
from .compiler import CachedRegion, FlattenedRegion
from .config import load_config
from .engine import TemplateEngine
from .errors import PCUserError
from .jsonic import dumps as jdumps
from .report_schema import CacheStatsReport, CompileReport, RegionInfo, RenderStatsReport
from .template import TextNode
from .version import tool_version

_yaml = YAML(typ="safe")

# Переменная окружения для отладочного логирования
DEBUG_ENV = "PC_DEBUG"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pcache",
        description="Partial template caching engine",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--verbose", action="store_true", help="отладочный вывод в stderr")
    p.add_argument("--config", metavar="FILE", help="путь к pcache.yaml (по умолчанию ./pcache.yaml)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_compile = sub.add_parser("compile", help="JSON-отчёт о развернутых регионах шаблона")
    sp_compile.add_argument("template", help="путь к файлу шаблона")

    sp_render = sub.add_parser("render", help="Отрендеренный текст шаблона")
    sp_render.add_argument("template", help="путь к файлу шаблона")
    sp_render.add_argument("--data", metavar="FILE", help="данные шаблона (.yaml/.yml/.json)")
    sp_render.add_argument("--reading-mode", metavar="MODE", help="значение $CurrentReadingMode")
    sp_render.add_argument("--user-id", metavar="ID", help="значение $CurrentUser.ID")
    sp_render.add_argument(
        "--stats",
        action="store_true",
        help="JSON-статистика кэша в stderr",
    )

    sp_cache = sub.add_parser("cache", help="Обслуживание файлового хранилища")
    sp_cache.add_argument("action", choices=["stats", "purge"], help="что сделать")

    return p


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if (verbose or os.environ.get(DEBUG_ENV)) else logging.WARNING
    log = logging.getLogger("pcache")
    log.setLevel(level)
    if not log.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        log.addHandler(h)


def _template_path(path_str: str) -> Path:
    path = Path(path_str)
    if not path.is_file():
        raise PCUserError(f"Template not found: {path}")
    return path


def _load_data(path_str: Optional[str]) -> Dict[str, Any]:
    """Читает данные шаблона из YAML или JSON, корень должен быть словарем."""
    if not path_str:
        return {}
    path = Path(path_str)
    if not path.is_file():
        raise PCUserError(f"Data file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(text) if text.strip() else {}
        else:
            raw = _yaml.load(text) or {}
    except (ValueError, YAMLError) as e:
        raise PCUserError(f"Invalid data file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise PCUserError(f"Data file must contain a mapping: {path}")
    return raw


def _render_globals(ns: argparse.Namespace) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if ns.reading_mode is not None:
        result["CurrentReadingMode"] = ns.reading_mode
    if ns.user_id is not None:
        result["CurrentUser"] = {"ID": ns.user_id}
    return result


def _region_info(index: int, region: FlattenedRegion) -> RegionInfo:
    preview = "".join(n.text for n in region.body if isinstance(n, TextNode))
    if len(preview) > 60:
        preview = preview[:60] + "..."
    if isinstance(region, CachedRegion):
        return RegionInfo(
            index=index,
            kind="cached",
            location=str(region.location),
            block_hash=region.block_hash,
            segment=region.segment,
            keys=[str(k) for k in region.key_exprs],
            condition=str(region.condition) if region.condition is not None else None,
            negated=region.negated,
            preview=preview,
        )
    return RegionInfo(index=index, kind="passthrough", preview=preview)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(ns.verbose))

    try:
        root = Path.cwd().resolve()
        cfg = load_config(root, path=Path(ns.config) if ns.config else None)

        if ns.cmd == "compile":
            path = _template_path(ns.template)
            engine = TemplateEngine(cfg, root=root)
            compiled = engine.compile(path.read_text(encoding="utf-8"), str(path))
            report = CompileReport(
                template=compiled.name,
                source_hash=compiled.source_hash,
                regions=[_region_info(i, r) for i, r in enumerate(compiled.regions)],
            )
            sys.stdout.write(jdumps(report.model_dump(mode="json")) + "\n")
            return 0

        if ns.cmd == "render":
            path = _template_path(ns.template)
            engine = TemplateEngine(cfg, root=root)
            text = engine.render_file(path, _load_data(ns.data), globals=_render_globals(ns))
            sys.stdout.write(text)
            if ns.stats and engine.last_stats is not None:
                stats = engine.last_stats
                report = RenderStatsReport(
                    template=str(path),
                    cache_enabled=cfg.cache.enabled,
                    backend=cfg.cache.backend.value,
                    regions=stats.regions,
                    hits=stats.hits,
                    misses=stats.misses,
                    writes=stats.writes,
                    bypassed=stats.bypassed,
                    store_errors=stats.store_errors,
                )
                sys.stderr.write(jdumps(report.model_dump(mode="json")) + "\n")
            return 0

        if ns.cmd == "cache":
            store = FileStore(root, dir_name=cfg.cache.dir)
            purged = None
            if ns.action == "purge":
                purged = store.purge_all()
            snap = store.snapshot(enabled=cfg.cache.enabled)
            report = CacheStatsReport(
                enabled=snap.enabled,
                backend=cfg.cache.backend.value,
                path=str(snap.path),
                exists=snap.exists,
                sizeBytes=snap.size_bytes,
                entries=snap.entries,
                purged=purged,
            )
            sys.stdout.write(jdumps(report.model_dump(mode="json")) + "\n")
            return 0

    except PCUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
