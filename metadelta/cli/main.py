import argparse
import logging
import sys

from metadelta._version import __version__
from metadelta.cli import compose, decompose, delta, diff
from metadelta.cli._logging import setup_logging
from metadelta.cli.exitcodes import EXIT_ENGINE_ERROR
from metadelta.core.loader import ConfigLoadError
from metadelta.vcs.git import VCSLookupError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="metadelta",
        description="Metadelta: structural diffs and delta packages for Salesforce metadata",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        help="Logging level for stderr (default: $METADELTA_LOG_LEVEL or WARNING).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    # decompose
    dec_p = sub.add_parser("decompose", help="Split a composite document into one file per entry.")
    dec_p.add_argument("source", help="Composite document (e.g. CustomLabels.labels-meta.xml).")
    dec_p.add_argument("--output", "-o", required=True, help="Output directory.")
    dec_p.add_argument("--type", dest="root_tag", default=None, help="Expected root tag (e.g. CustomLabels).")

    # compose
    com_p = sub.add_parser("compose", help="Compose a directory of entry files into one canonical document.")
    com_p.add_argument("input_dir", help="Directory written by 'decompose'.")
    com_p.add_argument("--output", "-o", required=True, help="Output file.")
    com_p.add_argument(
        "--type", dest="root_tag", default=None, help="Root tag (required when the directory is empty)."
    )

    # diff
    diff_p = sub.add_parser("diff", help="Structural diff of two revisions of one composite document.")
    diff_p.add_argument("old", help="Previous revision of the document.")
    diff_p.add_argument("new", help="Current revision of the document.")
    diff_p.add_argument("--output", "-o", required=True, help="File for changed and added entries.")
    diff_p.add_argument("--destructive", default=None, help="File for removed entries.")
    diff_p.add_argument("--type", dest="root_tag", default=None, help="Expected root tag.")
    diff_p.add_argument(
        "--always-include",
        dest="always_included",
        action="append",
        default=None,
        help="Section emitted in every delta (repeatable; default: the built-in list for the type).",
    )

    # delta
    delta_p = sub.add_parser("delta", help="Build change and destructive packages between two revisions.")
    delta_p.add_argument("path", nargs="?", default=".", help="Repository root (default: .)")
    delta_p.add_argument("--from", dest="from_ref", required=True, help="Base revision.")
    delta_p.add_argument("--to", dest="to_ref", default=None, help="Target revision (default: working tree).")
    delta_p.add_argument("--package-dir", "-p", dest="package_dir", required=True, help="Change package directory.")
    delta_p.add_argument(
        "--destructive-dir", "-d", dest="destructive_dir", default=None, help="Destructive package directory."
    )
    delta_p.add_argument("--source-root", dest="source_root", default=None, help="Metadata source root.")
    delta_p.add_argument("--config", default=None, help="Config file (default: metadelta.yaml in the repository).")
    delta_p.add_argument("--jobs", "-j", type=int, default=1, help="Parallel workers (default: 1).")
    delta_p.add_argument("--format", choices=["text", "json"], default="text", help="Output format.")
    verbosity = delta_p.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Minimal output (summary only).")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Verbose output (include all details).")

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        setup_logging(args.log_level)

        if args.cmd == "decompose":
            return decompose.run(source=args.source, output=args.output, root_tag=args.root_tag)

        if args.cmd == "compose":
            return compose.run(input_dir=args.input_dir, output=args.output, root_tag=args.root_tag)

        if args.cmd == "diff":
            always = tuple(args.always_included) if args.always_included is not None else None
            return diff.run(
                old=args.old,
                new=args.new,
                output=args.output,
                destructive=args.destructive,
                root_tag=args.root_tag,
                always_included=always,
            )

        if args.cmd == "delta":
            verbosity = "quiet" if args.quiet else ("verbose" if args.verbose else "normal")
            return delta.run(
                path=args.path,
                from_ref=args.from_ref,
                to_ref=args.to_ref,
                package_dir=args.package_dir,
                destructive_dir=args.destructive_dir,
                source_root=args.source_root,
                config=args.config,
                jobs=args.jobs,
                fmt=args.format,
                verbosity=verbosity,
            )

        print("Unknown command.", file=sys.stderr)
        return EXIT_ENGINE_ERROR

    except ConfigLoadError as e:
        print(f"metadelta: config error: {e}", file=sys.stderr)
        return EXIT_ENGINE_ERROR
    except VCSLookupError as e:
        print(f"metadelta: git error: {e}", file=sys.stderr)
        return EXIT_ENGINE_ERROR
    except Exception as e:
        logger.debug("unhandled error", exc_info=True)
        print(f"metadelta: error: {e}", file=sys.stderr)
        return EXIT_ENGINE_ERROR


if __name__ == "__main__":
    sys.exit(main())
