"""CLI entrypoint for the Medical Affairs Research Assistant."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable

from dotenv import load_dotenv

from agent import ResearchAgent
from errors import ResearchError
from models import Article, ResearchOptions, ResearchResult, TaskType
from multi_agent import MultiAgentPipeline
from output_generator import OutputGenerator
from pubmed_client import PubMedClient
from venice_client import VeniceClient
from workspace import ProjectWorkspace

# Research commands and the document each one produces.
COMMAND_TASKS: dict[str, TaskType] = {
    "research": TaskType.SUMMARY,
    "summary": TaskType.SUMMARY,
    "paper": TaskType.PAPER,
    "slides": TaskType.SLIDES,
    "kol": TaskType.KOL_BRIEFING,
    "competitive": TaskType.COMPETITIVE,
    "medinfo": TaskType.MEDICAL_INFO,
}
COMMANDS = ("search", "abstract", *COMMAND_TASKS, "pipeline", "interactive")

SEARCH_DEFAULT_MAX = 10
INTERACTIVE_MAX_RESULTS = 10
PROMPT = "MA-Research> "

USAGE_EPILOG = """commands:
  search <query>        quick PubMed search
  abstract <pmid>       get article abstract
  research <query>      full research workflow (summary)
  paper <query>         generate literature-review paper
  slides <query>        generate slide outline
  summary <query>       generate summary
  kol <query>           generate KOL briefing
  competitive <query>   competitive analysis (use --drugs)
  medinfo <query>       draft a medical information response
  pipeline <query>      multi-agent ideation -> planning -> execution -> writing
  interactive           line mode on stdin
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ma-research",
        description="Medical Affairs Research Assistant: PubMed search + Venice AI synthesis",
        epilog=USAGE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", help="Command to run (see below)")
    parser.add_argument("query", nargs="*", help="Free-text query or PMID")
    parser.add_argument("--clinical", action="store_true", help="Clinical trials only")
    parser.add_argument("--phase", default=None, help="Clinical trial phase publication type, e.g. 'clinical trial, phase iii'")
    parser.add_argument("--recent", type=int, default=None, metavar="N", help="Last N years")
    parser.add_argument("--max", type=int, default=None, metavar="N", help="Max results")
    parser.add_argument("--focus", default="", help="Focus areas (comma-separated)")
    parser.add_argument("--drugs", default="", help="Drugs to compare (comma-separated)")
    parser.add_argument("--output-dir", default=None, help="Directory for generated documents")
    parser.add_argument("--workspace", default=None, help="Workspace root for pipeline projects")
    parser.add_argument(
        "--human-review",
        action="store_true",
        help="Flag pipeline output as requiring human review before distribution",
    )
    return parser


def build_pubmed(args: argparse.Namespace) -> PubMedClient:
    return PubMedClient()


def build_agent(args: argparse.Namespace) -> ResearchAgent:
    return ResearchAgent(
        pubmed=PubMedClient(),
        venice=VeniceClient(),
        output=OutputGenerator(args.output_dir),
    )


def build_pipeline(args: argparse.Namespace) -> MultiAgentPipeline:
    return MultiAgentPipeline(
        pubmed=PubMedClient(),
        venice=VeniceClient(),
        workspace=ProjectWorkspace(args.workspace),
    )


def options_from_args(args: argparse.Namespace, query: str, task_type: TaskType) -> ResearchOptions:
    drugs = _split_csv(args.drugs)
    if task_type is TaskType.COMPETITIVE and not drugs:
        drugs = [query]

    options = ResearchOptions(
        clinical_only=args.clinical,
        phase=args.phase,
        recent_years=args.recent,
        focus_areas=_split_csv(args.focus),
        drugs=drugs,
    )
    if args.max:
        options.max_results = args.max
    return options


def print_articles(articles: list[Article]) -> None:
    print("\n--- Search Results ---\n")
    for index, article in enumerate(articles, 1):
        print(f"{index}. {article.title}")
        print(f"   PMID: {article.pmid} | {article.pub_date}")
        if article.journal:
            print(f"   Journal: {article.journal}")
        print("")


def print_research_result(result: ResearchResult) -> None:
    if not result.success:
        print(f"\nError: {result.error}", file=sys.stderr)
        return
    print("\nResearch complete!")
    print(f"Task: {result.task_type}")
    print(f"Articles analyzed: {len(result.articles)}")
    print(f"Total time: {result.duration_seconds} seconds")
    print(f"Output: {result.output_path}")


def run_interactive(agent: ResearchAgent, input_fn: Callable[[str], str] = input) -> int:
    """Read commands from stdin until ``quit``/``exit`` or EOF."""
    print("\nMedical Affairs Research Assistant - Interactive Mode")
    print("Commands: search <query>, abstract <pmid>, quit; anything else runs a summary\n")

    while True:
        try:
            line = input_fn(PROMPT).strip()
        except EOFError:
            break

        if line in ("quit", "exit"):
            break
        if not line:
            continue

        try:
            if line.startswith("search "):
                print_articles(agent.quick_search(line[len("search "):].strip(), INTERACTIVE_MAX_RESULTS))
            elif line.startswith("abstract "):
                record = agent.get_abstract(line[len("abstract "):].strip())
                print("\n--- Abstract ---")
                print(record.abstract or "No abstract found")
                print("")
            else:
                print("\nRunning research...")
                result = agent.research(
                    line, TaskType.SUMMARY, ResearchOptions(max_results=INTERACTIVE_MAX_RESULTS)
                )
                print_research_result(result)
        except ResearchError as exc:
            print(f"Error: {exc}", file=sys.stderr)

    return 0


def run_command(command: str, query: str, args: argparse.Namespace) -> int:
    """Execute one CLI command and return the process exit code."""
    if command == "interactive":
        return run_interactive(build_agent(args))

    if command == "search":
        articles = build_pubmed(args).search_and_enrich(query, args.max or SEARCH_DEFAULT_MAX)
        print_articles(articles)
        return 0

    if command == "abstract":
        record = build_pubmed(args).fetch_abstract(args.query[0])
        print("\n--- Abstract ---\n")
        print(record.abstract or "No abstract found")
        return 0

    if command == "pipeline":
        result = build_pipeline(args).research(
            query,
            max_results=args.max or 20,
            require_human_review=args.human_review,
        )
        if not result.success:
            print(f"\nError during {result.stage}: {result.error}", file=sys.stderr)
            return 1
        print("\nRESEARCH COMPLETE")
        print(f"Project: {result.project.project_id} ({result.project.directory})")
        print(f"Hypotheses: {len(result.hypotheses)}")
        print(f"Papers generated: {len(result.papers)}")
        print(f"Negative results: {result.negative_result_count}")
        if result.requires_human_review:
            print("Human review required before distribution")
        return 0

    task_type = COMMAND_TASKS[command]
    result = build_agent(args).research(query, task_type, options_from_args(args, query, task_type))
    print_research_result(result)
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    """Initialize config, parse arguments and run one command."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(argv)
    except SystemExit as exc:
        # argparse exits 2 on usage errors and 0 after --help
        return 1 if exc.code else 0

    if not args.command:
        parser.print_help(sys.stderr)
        return 1
    if args.command not in COMMANDS:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    query = " ".join(args.query).strip()
    if args.command != "interactive" and not query:
        print(f"Missing query for command '{args.command}'", file=sys.stderr)
        return 1

    try:
        return run_command(args.command, query, args)
    except Exception as exc:  # broad by design: report and exit non-zero
        logging.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _split_csv(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


if __name__ == "__main__":
    sys.exit(main())
