import argparse
import contextlib
import errno
import logging
import sys

from . import __version__
from .core import MacroEngine, Preprocessor
from .exceptions import AllocationError, ParseError

logger = logging.getLogger("macroproc")


def build_argument_parser(prog="macroproc"):
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Expand object-like macros in a text file.",
    )
    parser.add_argument("input", nargs="?",
                        help="file to preprocess, standard input if omitted")
    parser.add_argument("output", nargs="?",
                        help="file to write, standard output if omitted")
    parser.add_argument("-o", dest="output_option", metavar="OUTPUT",
                        help="file to write, same as the second positional")
    parser.add_argument("-D", dest="defines", action="append", default=[],
                        metavar="NAME[=VALUE]",
                        help="define a macro before processing starts")
    parser.add_argument("-I", dest="include_paths", action="append",
                        default=[], metavar="DIR",
                        help="add a directory to the #include search path")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log debug messages to standard error")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


def _open_output(path):
    if path is None:
        return contextlib.nullcontext(sys.stdout)
    return open(path, "w", newline="")


def _open_input(path):
    if path is None:
        return contextlib.nullcontext(sys.stdin)
    return open(path, encoding="utf-8")


def run(args):
    engine = MacroEngine()
    try:
        for definition in args.defines:
            engine.define_from_string(definition)
        preprocessor = Preprocessor(include_paths=args.include_paths,
                                    engine=engine)
        with _open_input(args.input) as f_object:
            with _open_output(args.output_option or args.output) as out:
                for chunk in preprocessor.preprocess(f_object):
                    out.write(chunk)
    except AllocationError as e:
        engine.symbols.clear()
        logger.error("%s", e)
        return errno.ENOMEM
    except (ParseError, OSError) as e:
        logger.error("%s", e)
        return 1
    except UnicodeDecodeError as e:
        logger.error("Input is not valid UTF-8: %s", e)
        return 1
    return 0


def main(argv=None):
    args = build_argument_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
