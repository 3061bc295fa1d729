# This file is part of fd_normal_form.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (http://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Command-line interface for analyzing functional dependencies."""

from __future__ import annotations

__all__ = ("main",)

import argparse
import json
import logging
import sys

from lsst.utils.logging import VERBOSE, getLogger

from ._serialization import DictWriter, format_report
from .parsing import ReaderConfig, read_dependencies

_LOG = getLogger(__name__)

_EPILOG = """\
Example input:
  A B C      optional first line that declares all attributes
  A -> B     first dependency
  C -> A B   another dependency
Use an empty line to finish input.
"""


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fdnf",
        description="Analyze the functional dependencies of a relation.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-i", "--input", metavar="FILE", help="Input file path.")
    source.add_argument("-p", "--prompt", action="store_true", help="Read dependencies from standard input.")
    parser.add_argument("-o", "--output", metavar="FILE", help="Output file path (default: standard output).")
    parser.add_argument(
        "-d",
        "--delimiter",
        default=" ",
        metavar="STRING",
        help="String delimiting attributes in the input (default: a single space).",
    )
    parser.add_argument(
        "-a",
        "--attributes",
        nargs="+",
        metavar="ATTRIBUTE",
        help="Forced attributes; overrides attributes declared in the input.",
    )
    parser.add_argument(
        "-r", "--only-read", action="store_true", help="Only read the input without analyzing it."
    )
    parser.add_argument("-j", "--json", action="store_true", help="Write the report as JSON.")
    parser.add_argument(
        "--skip-invalid",
        action="store_true",
        help="Skip lines that cannot be parsed or added instead of stopping.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "VERBOSE", "DEBUG"],
        help="Logging level (default: WARNING).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the command-line interface.

    Parameters
    ----------
    argv : `list` [ `str` ], optional
        Arguments, not including the program name.  Defaults to
        ``sys.argv[1:]``.

    Returns
    -------
    status : `int`
        Exit status; nonzero if a file cannot be read or written or if
        reading stopped at a rejected line.
    """
    args = _parse_args(argv)
    logging.basicConfig(level=VERBOSE if args.log_level == "VERBOSE" else args.log_level)

    config = ReaderConfig(
        delimiter=args.delimiter,
        forced_attributes=frozenset(args.attributes) if args.attributes else None,
        skip_invalid=args.skip_invalid,
    )
    if args.input:
        try:
            with open(args.input, encoding="utf-8") as stream:
                result = read_dependencies(stream, config)
        except OSError as err:
            print(f"Cannot read input file: {err}", file=sys.stderr)
            return 1
    else:
        result = read_dependencies(sys.stdin, config)
    _LOG.verbose("Read %d line(s), %d rejected.", len(result.lines), len(result.rejections))

    output: list[str] = []
    if args.only_read or not args.json:
        output.extend(result.lines)
    if not args.only_read:
        for rejection in result.rejections:
            print(str(rejection), file=sys.stderr)
        if result.relation is None:
            return 1
        solver = result.relation.solve()
        if args.json:
            output.append(json.dumps(DictWriter().write_solver(solver)))
        else:
            output.append(format_report(solver))

    text = "\n".join(output) + "\n"
    if args.output:
        try:
            with open(args.output, "w", encoding="utf-8") as stream:
                stream.write(text)
        except OSError as err:
            print(f"Cannot write output file: {err}", file=sys.stderr)
            return 1
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    sys.exit(main())
