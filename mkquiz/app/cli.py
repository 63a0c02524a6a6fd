import argparse
import logging
import sys

from . import config
from .config import QUESTION_TYPES, QUIZ_FOR, YEARS
from .errors import MkquizError
from .folders import auto_confirm
from .logs import configure_logging
from .manifest import list_for_year, load_manifest
from .project_config import load_and_validate_config, save_config
from .quizzes import create_quiz, fix_manifest_paths, list_selections, rebuild_quizzes, remove_quizzes
from .validation import validate_file_extension, validate_not_empty, validate_path_exists, validate_question_file

logger = logging.getLogger(__name__)


def ask(message: str, validate=None) -> str:
    """Prompt until ``validate`` accepts the answer."""
    while True:
        answer = input(f"{message} ").strip()
        if validate is None:
            return answer
        try:
            validate(answer)
        except MkquizError as exc:
            print(f"  {exc.message}")
            continue
        return answer


def value_or_ask(value, message: str, validate) -> str:
    if value is not None:
        validate(value)
        return value
    return ask(message, validate)


def choose(message: str, choices) -> str:
    print(message)
    for number, choice in enumerate(choices, start=1):
        print(f"  {number}) {choice}")
    while True:
        answer = input("> ").strip()
        if answer in choices:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            return choices[int(answer) - 1]
        print(f"  Pick a number between 1 and {len(choices)}")


def confirm(message: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    while True:
        answer = input(f"{message} ({hint}) ").strip().lower()
        if not answer:
            return default
        if answer in {"y", "yes"}:
            return True
        if answer in {"n", "no"}:
            return False


def pick_many(message: str, labels: list) -> list:
    print(message)
    for number, label in enumerate(labels, start=1):
        print(f"  {number}) {label}")
    while True:
        answer = input("Numbers (comma separated, blank for none): ").strip()
        if not answer:
            return []
        try:
            picks = sorted({int(part) for part in answer.replace(" ", "").split(",") if part})
        except ValueError:
            print("  Enter numbers separated by commas")
            continue
        if all(1 <= pick <= len(labels) for pick in picks):
            return [pick - 1 for pick in picks]
        print(f"  Pick numbers between 1 and {len(labels)}")


def _existing_file(extension: str):
    def check(value):
        validate_path_exists(value)
        validate_file_extension(value, extension, f"Valid {extension} file required")

    return check


def cmd_config(args) -> int:
    project_path = value_or_ask(args.project_path, "Enter the Quizzez project root path:", validate_path_exists)
    manifest_path = value_or_ask(args.manifest, "Enter the all Quizzez JSON path:", _existing_file(".json"))
    template_file = value_or_ask(args.template, "Enter path to template.html file:", _existing_file(".html"))
    path = save_config(
        {
            "projectPath": project_path,
            "templateFile": template_file,
            "allQuizzezJsonPath": manifest_path,
        }
    )
    print(f"Configuration saved to {path}")
    return 0


def cmd_add(args) -> int:
    cfg = load_and_validate_config()
    name = value_or_ask(args.name, "Quiz name (e.g. Computer Arch):", lambda v: validate_not_empty(v, "Name"))
    quiz_for = args.quiz_for or choose("Quiz for:", QUIZ_FOR)
    question_type = args.type or choose("Type of questions:", QUESTION_TYPES)
    year = args.year or choose("Quiz for year:", YEARS)
    question_file = value_or_ask(args.json, "Path to quiz JSON file:", validate_question_file)
    published = args.published if args.published is not None else confirm("Published?", default=True)

    overwrite = auto_confirm if args.yes else (lambda message: confirm(message, default=False))
    result = create_quiz(cfg, year, name, quiz_for, question_type, question_file, published, overwrite)
    print(f"Quiz {name.strip()} added successfully with {result['questionsCount']} questions")
    print(f"  folder: {result['quiz']['path']}")
    return 0


def cmd_remove(args) -> int:
    cfg = load_and_validate_config()
    year = args.year or choose("Select year:", YEARS)
    doc = load_manifest(cfg["allQuizzezJsonPath"])
    selections = list_selections(doc, year)
    if list_for_year(doc, year) is None or not selections:
        print(f"No quizzes found for {year} year.")
        return 1

    picks = pick_many("Select quizzes to remove:", [item["label"] for item in selections])
    if not picks:
        print("No quizzes selected for removal.")
        return 0
    chosen = [selections[index] for index in picks]

    names = "\n  ".join(item["label"] for item in chosen)
    if not args.yes and not confirm(f"Are you sure you want to remove these quizzes?\n  {names}\n", default=False):
        print("Operation cancelled.")
        return 0

    result = remove_quizzes(cfg, chosen)
    print(f"Successfully removed {result['removed']} quiz(es)")
    for label in result["missing"]:
        print(f"  not found: {label}")
    for item in result["failed"]:
        print(f"  folder not removed for {item['quiz']}: {item['error']}")
    return 0


def cmd_rebuild(args) -> int:
    cfg = load_and_validate_config()
    stats = rebuild_quizzes(cfg)
    print(f"Backup written to {stats['backup']}")
    print("All quizzes rebuilt")
    print("\nRebuild Statistics:")
    for year, count in stats["byYear"].items():
        print(f"{year} year quizzes = {count}")
    print("\nBy Quiz Type:")
    for quiz_type, count in stats["byType"].items():
        print(f"{quiz_type} quizzes = {count}")
    print(f"\nTotal quizzes = {stats['total']}")
    if stats["skipped"]:
        print(f"\nSkipped {len(stats['skipped'])} quiz(zes):")
        for item in stats["skipped"]:
            print(f"  {item['year']} {item['quiz']}: {item['error']}")
    print(f"\nJSON file updated: {cfg['allQuizzezJsonPath']}")
    return 0


def cmd_fix_paths(args) -> int:
    cfg = load_and_validate_config()
    fixed = fix_manifest_paths(cfg)
    print(f"Fixed {fixed} paths in the JSON file")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    print(f"mkquiz Web GUI: http://{args.host}:{args.port}")
    print(f"Health Check: http://{args.host}:{args.port}/api/health")
    uvicorn.run("mkquiz.app.main:app", host=args.host, port=args.port, log_level=config.LOG_LEVEL.lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mkquiz", description="Manage quizzes in a static Quizzez project.")
    parser.add_argument("--version", action="version", version="mkquiz 2.1.0")
    sub = parser.add_subparsers(dest="command")

    p_config = sub.add_parser("config", help="Set up Quizzez project configuration.")
    p_config.add_argument("--project-path", help="Quizzez project root.")
    p_config.add_argument("--manifest", help="Path to the all-quizzes JSON file.")
    p_config.add_argument("--template", help="Path to the quiz template.html.")
    p_config.set_defaults(handler=cmd_config)

    p_add = sub.add_parser("add", help="Add a new quiz to the project.")
    p_add.add_argument("--name", help="Quiz (subject) name.")
    p_add.add_argument("--quiz-for", choices=QUIZ_FOR)
    p_add.add_argument("--type", choices=QUESTION_TYPES, help="Question type.")
    p_add.add_argument("--year", choices=YEARS)
    p_add.add_argument("--json", help="Path to the question JSON file.")
    published = p_add.add_mutually_exclusive_group()
    published.add_argument("--published", dest="published", action="store_true", default=None)
    published.add_argument("--draft", dest="published", action="store_false")
    p_add.add_argument("--yes", action="store_true", help="Replace an existing quiz folder without asking.")
    p_add.set_defaults(handler=cmd_add)

    p_remove = sub.add_parser("remove", aliases=["rmv"], help="Remove existing quizzes from the project.")
    p_remove.add_argument("--year", choices=YEARS)
    p_remove.add_argument("--yes", action="store_true", help="Skip the removal confirmation.")
    p_remove.set_defaults(handler=cmd_remove)

    p_rebuild = sub.add_parser("rebuild", help="Rebuild every quiz folder and page from the manifest.")
    p_rebuild.set_defaults(handler=cmd_rebuild)

    p_fix = sub.add_parser("fix-paths", help="Normalize manifest paths to forward slashes with a leading slash.")
    p_fix.set_defaults(handler=cmd_fix_paths)

    p_serve = sub.add_parser("serve", help="Run the web API.")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=config.PORT)
    p_serve.set_defaults(handler=cmd_serve)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 0

    configure_logging(console=False)
    try:
        return args.handler(args)
    except MkquizError as exc:
        logger.error("%s failed: %s", args.command, exc.message, exc_info=exc)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
