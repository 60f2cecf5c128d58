# src/a11y_shell/core/handlers/audit_handler.py
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import yaml
from pydantic import ValidationError

from a11y_shell.core.context.shell_context import ShellContext
from a11y_shell.core.loop_runner import run_on_main_loop
from a11y_shell.core.managers.config_manager import config_manager
from a11y_shell.model import AuditConfig
from auditor.controllers.audit_controller import AuditController
from auditor.managers.audit_data_manager import AuditDataManager
from auditor.model import AuditResult
from auditor.services.audit_runner_service import AuditRunner
from auditor.testers.axe_tester import AxeTester
from auditor.testers.pa11y_tester import Pa11yTester
from sampler.model import SamplingConfigError
from sitemap.services.sitemap_fetcher_service import SitemapFetcherService, SitemapFetchError
from sitemap.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

# --- HELP TEXT ---

audit_help_text = """
  audit run --url <site> [--config <file>] [--output <file>] [--export <csv>] [--skip-db]
                      Fetches <site>/sitemap.xml, classifies URLs into page types,
                      samples each type with axe + pa11y and extrapolates the
                      violation counts. Results go to --output (JSON) and, unless
                      --skip-db is given, to the audit database.
                      --config takes JSON (.json) or YAML (.yaml/.yml).
                      Needs Playwright's Chromium (`playwright install chromium`)
                      and pa11y on PATH (`npx pa11y`). axe-core is downloaded to
                      ~/.cache/a11y-sampler on first use unless
                      testers.axe_script_path points at a local axe.min.js.

  audit show [<audit_id>]
                      Prints a stored audit and its extrapolated violations.
                      Without an id, shows the audit run earlier in the same
                      command chain (e.g. `audit run ... && audit show`).
""".strip()

EXPORT_COLUMNS = [
    "page_type", "pattern", "total_count", "pages_sampled", "rule_id", "impact",
    "category", "instances_found", "extrapolated_total", "help_url",
]


# --- RESULT HELPERS ---

def result_to_payload(result: AuditResult) -> Dict[str, Any]:
    payload = result.model_dump(mode="json")
    payload["total_extrapolated"] = result.total_extrapolated
    for page_type, report in zip(payload["page_types"], result.page_types):
        page_type["extrapolated_total"] = report.extrapolated_total
    return payload


def result_to_dataframe(result: AuditResult) -> pd.DataFrame:
    """One row per (page type, rule), sorted like the report."""
    rows = [
        {
            "page_type": report.type,
            "pattern": report.pattern,
            "total_count": report.total_count,
            "pages_sampled": report.pages_sampled,
            "rule_id": v.rule_id,
            "impact": v.impact,
            "category": v.category,
            "instances_found": v.instances_found,
            "extrapolated_total": v.extrapolated_total,
            "help_url": v.help_url,
        }
        for report in result.page_types
        for v in report.violations
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


# --- TASK HELPERS ---

async def _run_audit_task(
        site_url: str,
        audit_config: AuditConfig,
        data_manager: Optional[AuditDataManager],
) -> AuditResult:
    """
    Async task: fetch the sitemap, then run the controller inside the testers' lifetime.
    """
    sampling_config = audit_config.build_sampling_config(config_manager.get_nested("sampling", {}))
    type_concurrency = int(
        audit_config.sampling.get("type_concurrency", config_manager.get_nested("sampling.type_concurrency", 1))
    )
    tester_config = config_manager.get_nested("testers", {})

    sitemap_url = UrlUtils.get_sitemap_url(site_url)
    if sitemap_url is None:
        raise SitemapFetchError(f"Invalid site URL '{site_url}'")

    logger.info("Fetching sitemap %s ...", sitemap_url)
    async with SitemapFetcherService(config={"session": config_manager.get_nested("session", {})}) as fetcher:
        urls = await fetcher.fetch_urls(sitemap_url)
    logger.info("   Found %d URLs", len(urls))

    async with AuditRunner(AxeTester(tester_config), Pa11yTester(tester_config)) as runner:
        controller = AuditController(
            runner=runner,
            patterns=audit_config.page_types,
            sampling_config=sampling_config,
            data_manager=data_manager,
            type_concurrency=type_concurrency,
        )
        return await controller.run(
            site_url, urls,
            config_used={
                "pageTypes": [p.model_dump() for p in audit_config.page_types],
                "sampling": sampling_config.model_dump(),
            },
        )


def _load_audit_config(path: str) -> Tuple[Optional[AuditConfig], Optional[str]]:
    try:
        return AuditConfig.from_file(path), None
    except FileNotFoundError:
        return None, f"Config file '{path}' not found."
    except (json.JSONDecodeError, yaml.YAMLError, ValidationError) as e:
        return None, f"Invalid config file '{path}': {e}"


# --- HANDLERS ---

def _handle_run(args: argparse.Namespace, ctx: ShellContext) -> int:
    """Handles the 'audit run' command logic."""
    audit_config, error = _load_audit_config(args.config)
    if error:
        print(f"❌ Error: {error}")
        return 1
    if not audit_config.page_types:
        logger.warning("No page types configured; every URL will be classified as Unknown.")

    data_manager = None
    if not args.skip_db and config_manager.get_nested("database.enabled", True):
        data_manager = AuditDataManager(ctx.db_manager)

    print(f"🚀 Starting accessibility audit of {args.url} ...")
    try:
        result = run_on_main_loop(_run_audit_task(args.url, audit_config, data_manager))
    except KeyboardInterrupt:
        print("\n🛑 Audit interrupted by user.")
        return 1
    except (SitemapFetchError, SamplingConfigError, ValidationError) as e:
        print(f"❌ Audit failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Audit failed: {e}", exc_info=True)
        print(f"❌ Audit failed: {e}")
        return 1

    if result.audit_id:
        ctx.set("audit.id", result.audit_id)

    output_path = Path(args.output)
    output_path.write_text(json.dumps(result_to_payload(result), indent=2), encoding="utf-8")
    print(f"💾 Results saved to {output_path}")

    if args.export:
        result_to_dataframe(result).to_csv(args.export, index=False)
        print(f"📄 Violations exported to {args.export}")

    print("✅ Audit complete!")
    for report in result.page_types:
        print(f"   {report.type}: tested {report.pages_sampled} of {report.total_count} pages, "
              f"{len(report.violations)} rules, ~{report.extrapolated_total} violations")
    print(f"   Total violations (extrapolated): {result.total_extrapolated:,}")
    print(f"   Duration: {result.duration_seconds}s")
    return 0


def _handle_show(args: argparse.Namespace, ctx: ShellContext) -> int:
    """Handles the 'audit show' command."""
    audit_id = args.audit_id or ctx.get("audit.id")
    if not audit_id:
        print("❌ Error: No audit id given and no audit has run in this session.")
        return 1

    data_manager = AuditDataManager(ctx.db_manager)
    audit = data_manager.get_audit(audit_id)
    if not audit:
        print(f"❌ Error: Audit '{audit_id}' not found.")
        return 1

    print(f"Audit {audit['id']} ({audit['status']}) for {audit['url']}")
    print(f"   Created:    {audit['created_at']}")
    print(f"   Duration:   {audit['duration_seconds']}s")
    print(f"   Violations: {audit['total_violations']} (extrapolated)")

    df = data_manager.load_violations_df(audit_id)
    if df.empty:
        print("   (no violations recorded)")
    else:
        print(df.to_string(index=False))
    return 0


def handle_audit(args: List[str], ctx: ShellContext) -> int:
    """
    Main entry point for audit commands.
    Parses arguments and dispatches to specific sub-handlers.
    """
    parser = argparse.ArgumentParser(prog="audit", description="Run accessibility audits.", add_help=False)
    subparsers = parser.add_subparsers(dest="subcommand")

    run_parser = subparsers.add_parser("run", add_help=False)
    run_parser.add_argument("--url", "-u", required=True)
    run_parser.add_argument("--config", "-c", default="config.json")
    run_parser.add_argument("--output", "-o", default="audit-results.json")
    run_parser.add_argument("--export", default=None)
    run_parser.add_argument("--skip-db", action="store_true")
    run_parser.set_defaults(func=_handle_run)

    show_parser = subparsers.add_parser("show", add_help=False)
    show_parser.add_argument("audit_id", nargs="?", default=None)
    show_parser.set_defaults(func=_handle_show)

    if not args or args[0] in ["help", "-h", "--help"]:
        print(audit_help_text)
        return 0

    try:
        parsed_args = parser.parse_args(args)
        if hasattr(parsed_args, "func"):
            return parsed_args.func(parsed_args, ctx)
        print(audit_help_text)
        return 1
    except SystemExit:
        # Argparse calls sys.exit() on error; show custom help instead
        print(audit_help_text)
        return 1
