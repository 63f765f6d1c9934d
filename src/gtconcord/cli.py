from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .concordance import ConcordanceConfig, compare_vcfs, run_summary
from .intervals import load_intervals
from .metrics import contingency_metrics, summary_metrics
from .output import (
    CONTINGENCY_METRICS_EXT,
    DETAIL_METRICS_EXT,
    OUTPUT_VCF_EXT,
    REPORT_HTML_EXT,
    SUMMARY_JSON_EXT,
    SUMMARY_METRICS_EXT,
    output_path,
    write_outputs,
)
from .plotting import plot_contingency_counts, plot_rates
from .report import render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir
from .validation import check_contig_compatibility, check_interval_contigs, check_vcf_index
from .vcf_io import resolve_sample, vcf_contigs


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _non_negative_int(v: str) -> int:
    try:
        n = int(v)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected an integer: {v}") from e
    if n < 0:
        raise argparse.ArgumentTypeError(f"Expected a value >= 0: {v}")
    return n


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None and log_path.exists():
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gtconcord",
        description=(
            "gtconcord: genotype concordance between one sample of a truth VCF and one sample "
            "of a call VCF (sensitivity, PPV, specificity and a full truth x call state matrix)."
        ),
    )
    p.add_argument("--version", action="version", version=f"gtconcord {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny truth/call VCF pair and interval file for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # compare
    # -----------------
    c = sub.add_parser(
        "compare",
        help="Compare genotypes of a call VCF sample against a truth VCF sample.",
    )
    c.add_argument("--truth-vcf", required=True, type=_path_exists, help="Truth VCF (.vcf/.vcf.gz/.bcf).")
    c.add_argument("--call-vcf", required=True, type=_path_exists, help="Call VCF (.vcf/.vcf.gz/.bcf).")
    c.add_argument("--truth-sample", default=None, help="Truth sample name (default: first sample).")
    c.add_argument("--call-sample", default=None, help="Call sample name (default: first sample).")
    c.add_argument(
        "--output",
        required=True,
        help="Output prefix; metrics are written to <prefix>.genotype_concordance_*.",
    )
    c.add_argument(
        "--intervals",
        nargs="+",
        type=_path_exists,
        default=None,
        help="BED or .interval_list files restricting the comparison.",
    )
    c.add_argument("--min-gq", type=_non_negative_int, default=0, help="Genotypes with GQ below this are LOW_GQ.")
    c.add_argument("--min-dp", type=_non_negative_int, default=0, help="Genotypes with DP below this are LOW_DP.")
    c.add_argument(
        "--output-all-rows",
        action="store_true",
        help="Write every truth/call state combination to the detail metrics, including zero counts.",
    )
    c.add_argument(
        "--missing-sites-hom-ref",
        action="store_true",
        help="Treat call sites absent from the truth as hom-ref in the truth (requires --intervals).",
    )
    c.add_argument(
        "--ignore-filter-status",
        action="store_true",
        help="Compare filtered sites and genotypes as if they passed.",
    )
    c.add_argument(
        "--output-vcf",
        action="store_true",
        help="Write an annotated VCF with per-site truth/call states.",
    )
    c.add_argument("--report", action="store_true", help="Write an HTML report with plots.")
    c.add_argument(
        "--threads",
        type=int,
        default=1,
        help="Worker processes; >1 splits indexed inputs by contig.",
    )
    c.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    c.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


def cmd_quickstart() -> int:
    lines = [
        "gtconcord quickstart (copy/paste):",
        "",
        "1) Compare a call set against a truth set:",
        "   gtconcord compare \\",
        "     --truth-vcf truth.vcf.gz \\",
        "     --call-vcf calls.vcf.gz \\",
        "     --output results/sample1",
        "   Outputs: results/sample1.genotype_concordance_{summary,detail,contingency}_metrics",
        "",
        "2) Restrict to confident regions and count absent truth sites as hom-ref:",
        "   gtconcord compare \\",
        "     --truth-vcf truth.vcf.gz --truth-sample NA12878 \\",
        "     --call-vcf calls.vcf.gz --call-sample sample1 \\",
        "     --intervals confident.bed --missing-sites-hom-ref \\",
        "     --min-gq 20 --min-dp 10 \\",
        "     --output results/sample1 --report",
        "   Outputs: the metrics files plus results/sample1.genotype_concordance.html",
        "",
        "3) Try it on toy data:",
        "   gtconcord make-toy-data --outdir toy/",
        "   gtconcord compare --truth-vcf toy/truth.vcf.gz --call-vcf toy/call.vcf.gz \\",
        "     --output toy/out/toy --output-vcf",
        "",
        "Tip: use --dry-run to validate inputs and list the files that would be written.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _config_from_args(args: argparse.Namespace) -> ConcordanceConfig:
    return ConcordanceConfig(
        min_gq=int(args.min_gq),
        min_dp=int(args.min_dp),
        output_all_rows=bool(args.output_all_rows),
        missing_sites_hom_ref=bool(args.missing_sites_hom_ref),
        ignore_filter_status=bool(args.ignore_filter_status),
        output_vcf=bool(args.output_vcf),
        threads=int(args.threads),
    )


def cmd_compare(args: argparse.Namespace) -> int:
    prefix = Path(args.output).expanduser().resolve()
    outdir = prefix.parent
    log_path = _log_path(outdir, "compare.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("gtconcord")
    logger.info("gtconcord %s", __version__)

    try:
        config = _config_from_args(args)
        intervals = load_intervals(args.intervals) if args.intervals else None
        config.validate(has_intervals=intervals is not None)

        truth_sample = resolve_sample(args.truth_vcf, args.truth_sample, role="truth")
        call_sample = resolve_sample(args.call_vcf, args.call_sample, role="call")

        parallel = config.threads > 1 and not config.output_vcf
        check_vcf_index(args.truth_vcf, required=parallel)
        check_vcf_index(args.call_vcf, required=parallel)

        truth_contigs = vcf_contigs(args.truth_vcf)
        call_contigs = vcf_contigs(args.call_vcf)
        check_contig_compatibility(truth_contigs, call_contigs)
        if intervals is not None:
            check_interval_contigs(intervals, truth_contigs + call_contigs)

        planned = [SUMMARY_METRICS_EXT, DETAIL_METRICS_EXT, CONTINGENCY_METRICS_EXT, SUMMARY_JSON_EXT]
        if config.output_vcf:
            planned.append(OUTPUT_VCF_EXT)
        if args.report:
            planned.append(REPORT_HTML_EXT)

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print(f"Truth sample: {truth_sample}")
            print(f"Call sample: {call_sample}")
            print("Planned outputs:")
            for ext in planned:
                print(f"  {output_path(prefix, ext)}")
            return 0

        ensure_outdir(outdir)

        result = compare_vcfs(
            args.truth_vcf,
            args.call_vcf,
            truth_sample=truth_sample,
            call_sample=call_sample,
            config=config,
            intervals=intervals,
            output_vcf_path=output_path(prefix, OUTPUT_VCF_EXT) if config.output_vcf else None,
            progress=not args.no_progress,
        )
        paths = write_outputs(prefix, result, config=config)

        if args.report:
            kw = dict(truth_sample=result.truth_sample, call_sample=result.call_sample)
            summary = summary_metrics(result.counts, **kw)
            contingency = contingency_metrics(result.counts, **kw)

            plots_dir = outdir / "plots"
            contingency_png = plots_dir / f"{prefix.name}.contingency.png"
            rates_png = plots_dir / f"{prefix.name}.rates.png"
            plot_contingency_counts(rows=contingency, out_png=contingency_png)
            plot_rates(rows=summary, out_png=rates_png)

            paths["report"] = render_report(
                out_html=output_path(prefix, REPORT_HTML_EXT),
                version=__version__,
                truth_vcf=args.truth_vcf,
                call_vcf=args.call_vcf,
                run=run_summary(result, config=config),
                summary=summary,
                contingency=contingency,
                plots={
                    "Contingency counts": str(Path("plots") / contingency_png.name),
                    "Concordance rates": str(Path("plots") / rates_png.name),
                },
            )

        for name, path in paths.items():
            logger.info("Wrote %s: %s", name, path)
        print(str(paths["summary_metrics"]))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "compare":
        return cmd_compare(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
