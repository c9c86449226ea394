"""Command line entry point: score manifests, list checks, print the version."""

from __future__ import annotations

import argparse
import contextlib
import csv
import json
import os
import sys
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Callable, Iterable, Mapping, NoReturn, Sequence

from kubescore import apps, ci, human, json_v2, sarif_report
from kubescore.checks import Checks, RegisteredCheck, TargetType
from kubescore.config import Configuration, InvalidSemverError, parse_semver
from kubescore.domain import Check, Grade, ObjectMeta, ScoredObject, Scorecard
from kubescore.parser import ParsedObjects, Parser, empty
from kubescore.resources import Workload

VERSION = "development"
COMMIT = "N/A"
DATE = "N/A"

_OUTPUT_FORMATS = ("human", "ci", "json", "sarif")
_IGNORE_ANNOTATION = "kube-score/ignore"
_ENABLE_ANNOTATION = "kube-score/enable"
_DEFAULT_TERMINAL_WIDTH = 80

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class UsageError(Exception):
    """Raised when the command line cannot be acted upon."""


class _FlagError(UsageError):
    """A flag could not be parsed."""


@dataclass(frozen=True)
class _Flag:
    name: str
    help: str
    kind: str = "bool"  # one of: bool, count, string, strings
    short: str = ""
    default: str = ""

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")


_SCORE_FLAGS = (
    _Flag("exit-one-on-warning", "Exit with code 1 in case of warnings"),
    _Flag(
        "ignore-container-cpu-limit",
        "Disables the requirement of setting a container CPU limit",
    ),
    _Flag(
        "ignore-container-memory-limit",
        "Disables the requirement of setting a container memory limit",
    ),
    _Flag(
        "verbose",
        "Enable verbose output, can be set multiple times for increased verbosity.",
        kind="count",
        short="v",
    ),
    _Flag("help", "Print help"),
    _Flag(
        "output-format",
        "Set to 'human', 'json', 'ci' or 'sarif'. If set to ci, kube-score will output "
        "the program in a format that is easier to parse by other programs. Sarif output "
        "allows for easier integration with CI platforms.",
        kind="string",
        short="o",
        default="human",
    ),
    _Flag(
        "output-version",
        "Changes the version of the --output-format. The 'json' format has version 'v2' "
        "(default) and 'v1' (deprecated, will be removed in v1.7.0). The 'human' and 'ci' "
        "formats has only version 'v1' (default). If not explicitly set, the default "
        "version for that particular output format will be used.",
        kind="string",
    ),
    _Flag(
        "enable-optional-test",
        "Enable an optional test, can be set multiple times",
        kind="strings",
    ),
    _Flag("ignore-test", "Disable a test, can be set multiple times", kind="strings"),
    _Flag(
        "disable-ignore-checks-annotations",
        "Set to true to disable the effect of the 'kube-score/ignore' annotations",
    ),
    _Flag(
        "disable-optional-checks-annotations",
        "Set to true to disable the effect of the 'kube-score/enable' annotations",
    ),
    _Flag(
        "kubernetes-version",
        "Setting the kubernetes-version will affect the checks ran against the manifests. "
        "Set this to the version of Kubernetes that you're using in production for the "
        "best results.",
        kind="string",
        default="v1.18",
    ),
)

_LIST_FLAGS = (_Flag("help", "Print help"),)

_ACTION_FLAGS: dict[str, tuple[_Flag, ...]] = {
    "score": _SCORE_FLAGS,
    "list": _LIST_FLAGS,
}


class _FlagParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise _FlagError(message)


def _flag_parser(bin_name: str, flags: Iterable[_Flag]) -> _FlagParser:
    parser = _FlagParser(prog=bin_name, add_help=False)
    for flag in flags:
        names = [f"--{flag.name}"] + ([f"-{flag.short}"] if flag.short else [])
        if flag.kind == "bool":
            parser.add_argument(*names, dest=flag.dest, action="store_true", default=False)
        elif flag.kind == "count":
            parser.add_argument(*names, dest=flag.dest, action="count", default=0)
        elif flag.kind == "strings":
            parser.add_argument(*names, dest=flag.dest, action="append", default=None)
        else:
            parser.add_argument(*names, dest=flag.dest, default=flag.default)
    parser.add_argument("files", nargs="*")
    return parser


def _flag_label(flag: _Flag) -> str:
    prefix = f"-{flag.short}, " if flag.short else "    "
    type_name = {"bool": "", "count": " count", "string": " string", "strings": " strings"}
    return f"  {prefix}--{flag.name}{type_name[flag.kind]}"


def _flag_defaults(flags: Sequence[_Flag]) -> str:
    labels = [_flag_label(flag) for flag in flags]
    width = max(len(label) for label in labels)
    lines = []
    for label, flag in zip(labels, flags):
        text = flag.help
        if flag.kind == "string" and flag.default:
            text += f' (default "{flag.default}")'
        lines.append(f"{label.ljust(width)}   {text}")
    return "\n".join(lines) + "\n"


def usage(bin_name: str, action_name: str = "", display_for_more_info: bool = True) -> str:
    """The help text for the program, or for one of its actions."""
    text = (
        f"Usage of {bin_name}:\n"
        f"{bin_name} [action] --flags\n"
        "\n"
        "Actions:\n"
        "\tscore\tChecks all files in the input, and gives them a score and recommendations\n"
        "\tlist\tPrints a CSV list of all available score checks\n"
        "\tversion\tPrint the version of kube-score\n"
        "\thelp\tPrint this message\n"
        "\n"
    )
    if display_for_more_info:
        text += (
            f'Run "{bin_name} [action] --help" for more information about a particular command'
        )
    if action_name:
        text += f"Flags for {action_name}:"
    text += "\n"
    if action_name in _ACTION_FLAGS:
        text += _flag_defaults(_ACTION_FLAGS[action_name])
    return text


def exec_name(arg0: str) -> str:
    """The name the program was started as; "kubectl-score" becomes "kubectl score"."""
    bin_name = PurePosixPath(arg0).name
    if not bin_name:
        bin_name = "/" if arg0.startswith("/") else "."
    if bin_name.startswith("kubectl-"):
        bin_name = bin_name.replace("kubectl-", "kubectl ", 1)
    return bin_name


def is_kubectl_plugin(help_name: str) -> bool:
    """Whether the program runs as the kubectl "score" plugin."""
    return exec_name(help_name) == "kubectl score"


def parse_command(args: Sequence[str], commands: Mapping[str, Any]) -> tuple[str, int]:
    """Pick the command to run and the offset at which its arguments start.

    Returns an empty command when none is given and no default applies.
    """
    command = ""
    offset = 0
    # As a kubectl plugin "kubectl score" means "kubectl score score".
    if is_kubectl_plugin(exec_name(args[0])):
        command = "score"
        offset = 1

    if len(args) <= offset:
        raise UsageError("No command, flag or file")

    if len(args) > 1 and args[1] in commands:
        command = args[1]
        offset = 2
    return command, offset


def version_text() -> str:
    """The version line printed by the "version" action."""
    return f"kube-score version: {VERSION}, commit: {COMMIT}, built: {DATE}"


def get_output_version(flag_value: str, output_format: str) -> str:
    """The explicit output version, or the default one for the format."""
    if flag_value:
        return flag_value
    return "v2" if output_format == "json" else "v1"


@dataclass
class _NamedReader:
    stream: Any
    name: str

    def read(self) -> Any:
        return self.stream.read()


def _split_list(values: Iterable[str] | None) -> set[str]:
    return {
        item.strip()
        for value in values or ()
        for item in value.split(",")
        if item.strip()
    }


def _annotation_ids(meta: ObjectMeta, annotation: str) -> set[str]:
    return _split_list([meta.annotations.get(annotation, "")])


def _check_enabled(check: Check, meta: ObjectMeta, config: Configuration) -> bool:
    if config.use_ignore_checks_annotation and check.id in _annotation_ids(
        meta, _IGNORE_ANNOTATION
    ):
        return False
    if not check.optional:
        return True
    if check.id in config.enabled_optional_tests:
        return True
    return config.use_optional_checks_annotation and check.id in _annotation_ids(
        meta, _ENABLE_ANNOTATION
    )


def _object_key(workload: Workload) -> str:
    type_meta = workload.type_meta()
    meta = workload.object_meta()
    return f"{type_meta.api_version}/{type_meta.kind}/{meta.namespace}/{meta.name}"


def _score_workloads(
    scorecard: Scorecard,
    workloads: Iterable[Workload],
    registered: Mapping[str, RegisteredCheck],
    config: Configuration,
) -> None:
    for workload in workloads:
        meta = workload.object_meta()
        scored = scorecard.setdefault(
            _object_key(workload),
            ScoredObject(
                type_meta=workload.type_meta(),
                object_meta=meta,
                file_location=workload.location,
            ),
        )
        for entry in registered.values():
            if not _check_enabled(entry.check, meta, config):
                continue
            result = entry.fn(workload.obj)
            result.check = entry.check
            scored.checks.append(result)


def _build_checks(parsed: ParsedObjects, config: Configuration) -> Checks:
    checks = Checks(config)
    apps.register(checks, parsed.hpa_targeters, parsed.services)
    return checks


def _score(parsed: ParsedObjects, config: Configuration) -> Scorecard:
    checks = _build_checks(parsed, config)
    scorecard = Scorecard()
    _score_workloads(
        scorecard, parsed.deployments, checks.for_target(TargetType.DEPLOYMENT), config
    )
    _score_workloads(
        scorecard, parsed.statefulsets, checks.for_target(TargetType.STATEFUL_SET), config
    )
    return scorecard


def _json_v1(scorecard: Scorecard) -> str:
    def object_meta(meta: ObjectMeta) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if meta.name:
            result["name"] = meta.name
        if meta.namespace:
            result["namespace"] = meta.namespace
        result["creationTimestamp"] = None
        if meta.labels:
            result["labels"] = dict(meta.labels)
        if meta.annotations:
            result["annotations"] = dict(meta.annotations)
        return result

    def scored(obj: ScoredObject) -> dict[str, Any]:
        type_meta: dict[str, Any] = {}
        if obj.type_meta.kind:
            type_meta["kind"] = obj.type_meta.kind
        if obj.type_meta.api_version:
            type_meta["apiVersion"] = obj.type_meta.api_version
        checks = [
            {
                "Check": {
                    "Name": c.check.name,
                    "ID": c.check.id,
                    "TargetType": c.check.target_type,
                    "Comment": c.check.comment,
                    "Optional": c.check.optional,
                },
                "Grade": int(c.grade),
                "Skipped": c.skipped,
                "Comments": [
                    {
                        "Path": m.path,
                        "Summary": m.summary,
                        "Description": m.description,
                        "DocumentationURL": m.documentation_url,
                    }
                    for m in c.comments
                ]
                or None,
            }
            for c in obj.checks
        ]
        return {
            "TypeMeta": type_meta,
            "ObjectMeta": object_meta(obj.object_meta),
            "Checks": checks or None,
            "FileLocation": {
                "Name": obj.file_location.name,
                "Line": obj.file_location.line,
            },
        }

    document = {key: scored(scorecard[key]) for key in sorted(scorecard)}
    text = json.dumps(document, indent=4, ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _terminal_width() -> int:
    try:
        return os.get_terminal_size(sys.stdin.fileno()).columns
    except (OSError, ValueError, AttributeError):
        return _DEFAULT_TERMINAL_WIDTH


def _render(scorecard: Scorecard, output_format: str, version: str, verbose: int) -> str:
    if output_format == "json" and version == "v1":
        return _json_v1(scorecard)
    if output_format == "json" and version == "v2":
        return json_v2.render(scorecard)
    if output_format == "human" and version == "v1":
        return human.render(scorecard, verbose, _terminal_width())
    if output_format == "ci" and version == "v1":
        return ci.render(scorecard)
    if output_format == "sarif":
        return sarif_report.render(scorecard)
    raise UsageError("error: Unknown --output-format or --output-version")


def score_files(bin_name: str, args: Sequence[str]) -> int:
    """Score the files named in ``args``, print the report and return the exit code."""
    options = _flag_parser(bin_name, _SCORE_FLAGS).parse_intermixed_args(list(args))

    if options.help:
        print(usage(bin_name, "score", False))
        return 0

    if options.output_format not in _OUTPUT_FORMATS:
        print(usage(bin_name, "score", False))
        raise UsageError(
            "Error: --output-format must be set to: 'human', 'json', 'sarif' or 'ci'"
        )

    if not options.files:
        raise UsageError(
            "Error: No files given as arguments.\n\n"
            f"Usage: {exec_name(bin_name)} score [--flag1 --flag2] file1 file2 ...\n\n"
            'Use "-" as filename to read from STDIN.'
        )

    try:
        kubernetes_version = parse_semver(options.kubernetes_version)
    except InvalidSemverError:
        raise UsageError('Invalid --kubernetes-version. Use on format "vN.NN"') from None

    with contextlib.ExitStack() as stack:
        readers = []
        for file in options.files:
            if file == "-":
                stream = getattr(sys.stdin, "buffer", sys.stdin)
                readers.append(_NamedReader(stream, "STDIN"))
            else:
                stream = stack.enter_context(open(file, "rb"))
                readers.append(_NamedReader(stream, os.path.abspath(file)))

        config = Configuration(
            all_files=readers,
            verbose_output=options.verbose,
            ignore_container_cpu_limit_requirement=options.ignore_container_cpu_limit,
            ignore_container_memory_limit_requirement=options.ignore_container_memory_limit,
            ignored_tests=_split_list(options.ignore_test),
            enabled_optional_tests=_split_list(options.enable_optional_test),
            use_ignore_checks_annotation=not options.disable_ignore_checks_annotations,
            use_optional_checks_annotation=not options.disable_optional_checks_annotations,
            kubernetes_version=kubernetes_version,
        )
        parsed = Parser().parse_files(config)

    scorecard = _score(parsed, config)

    if scorecard.any_below_or_equal_to_grade(Grade.CRITICAL):
        exit_code = 1
    elif options.exit_one_on_warning and scorecard.any_below_or_equal_to_grade(Grade.WARNING):
        exit_code = 1
    else:
        exit_code = 0

    version = get_output_version(options.output_version, options.output_format)
    output = _render(scorecard, options.output_format, version, options.verbose)
    print(output, end="")
    return exit_code


def list_checks(bin_name: str, args: Sequence[str]) -> int:
    """Print every available check as CSV: id, target type, comment, default/optional."""
    options = _flag_parser(bin_name, _LIST_FLAGS).parse_intermixed_args(list(args))
    if options.help:
        print(usage(bin_name, "list", False))
        return 0

    checks = _build_checks(empty(), Configuration())
    writer = csv.writer(sys.stdout, lineterminator="\n")
    for check in checks.all():
        writer.writerow(
            [
                check.id,
                check.target_type,
                check.comment,
                "optional" if check.optional else "default",
            ]
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the program; ``argv`` is the full argument list, program name first."""
    args = list(sys.argv if argv is None else argv) or ["kube-score"]
    help_name = exec_name(args[0])

    def run_score(name: str, rest: Sequence[str]) -> int:
        try:
            return score_files(name, rest)
        except _FlagError as exc:
            print(exc, file=sys.stderr)
            print(usage(name, "score", False), file=sys.stderr)
            return 2
        except (UsageError, ValueError, OSError) as exc:
            print(f"Failed to score files: {exc}", file=sys.stderr)
            return 1

    def run_list(name: str, rest: Sequence[str]) -> int:
        try:
            return list_checks(name, rest)
        except _FlagError as exc:
            print(exc, file=sys.stderr)
            print(usage(name, "list", False), file=sys.stderr)
            return 2

    def run_version(name: str, rest: Sequence[str]) -> int:
        print(version_text())
        return 0

    def run_help(name: str, rest: Sequence[str]) -> int:
        print(usage(help_name, "", True))
        return 1

    commands: dict[str, Callable[[str, Sequence[str]], int]] = {
        "score": run_score,
        "list": run_list,
        "version": run_version,
        "help": run_help,
    }

    try:
        command, offset = parse_command(args, commands)
    except UsageError:
        print(usage(help_name, "", True))
        return 1

    return commands.get(command, run_help)(help_name, args[offset:])