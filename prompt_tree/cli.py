#!/usr/bin/env python3
"""CLI for rendering YAML prompt documents."""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from prompt_tree.errors import PromptError
from prompt_tree.loader import load_prompt
from prompt_tree.messages import DEFAULT_MODEL, Endpoint, RenderResult
from prompt_tree.output import OutputMode, to_mode
from prompt_tree.renderer import render_prompt_sync
from prompt_tree.tokenizer import AnthropicTokenizer, SimpleTokenizer, Tokenizer

DEFAULT_BUDGET = 4096


def build_tokenizer(name: str, model: str) -> Tokenizer:
    """Tokenizer for the --tokenizer flag."""
    if name == "anthropic":
        return AnthropicTokenizer(model=model)
    return SimpleTokenizer()


def format_result(result: RenderResult, mode: OutputMode) -> str:
    """JSON text for the rendered messages in the requested shape."""
    if mode is OutputMode.RAW:
        payload = {
            "messages": [
                {"role": m.role.value, "content": m.content, **({"name": m.name} if m.name else {})}
                for m in result.messages
            ],
            "token_count": result.token_count,
            "references": [str(r) for r in result.references],
        }
    elif mode is OutputMode.ANTHROPIC:
        system, messages = to_mode(mode, result.messages)
        payload = {"system": system, "messages": messages}
    else:
        payload = {"messages": to_mode(mode, result.messages)}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def main() -> None:
    # Load environment variables (ANTHROPIC_API_KEY) from .env file
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Render a YAML prompt document into chat messages within a token budget.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  prompt-tree prompt.yaml
  prompt-tree prompt.yaml --budget 200 --format openai
  prompt-tree prompt.yaml --tokenizer anthropic --format anthropic -v
        """,
    )
    parser.add_argument(
        "prompt",
        type=Path,
        help="Path to the YAML prompt document",
    )
    parser.add_argument(
        "--budget", "-b",
        type=int,
        default=None,
        help=f"Token budget (default: the document's max_prompt_tokens, else {DEFAULT_BUDGET})",
    )
    parser.add_argument(
        "--format", "-f",
        choices=[m.value for m in OutputMode],
        default=OutputMode.RAW.value,
        help="Output message shape (default: raw)",
    )
    parser.add_argument(
        "--tokenizer", "-t",
        choices=["simple", "anthropic"],
        default="simple",
        help="Token counter: offline estimate or Anthropic's count_tokens API (default: simple)",
    )
    parser.add_argument(
        "--model", "-m",
        default=DEFAULT_MODEL,
        help=f"Model for --tokenizer anthropic (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    # Configure logging (after parsing so --verbose is available)
    handler = logging.StreamHandler(sys.stderr)
    if args.verbose:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
        logging.getLogger("prompt_tree").setLevel(logging.DEBUG)
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger("prompt_tree").setLevel(logging.INFO)
    logging.getLogger("prompt_tree").addHandler(handler)

    try:
        document = load_prompt(args.prompt)
        budget = args.budget
        if budget is None:
            budget = document.max_prompt_tokens if document.max_prompt_tokens is not None else DEFAULT_BUDGET
        endpoint = Endpoint(max_prompt_tokens=budget, model=args.model)
        tokenizer = build_tokenizer(args.tokenizer, args.model)

        result = render_prompt_sync(document.root, endpoint=endpoint, tokenizer=tokenizer)

        print(format_result(result, OutputMode(args.format)))
        print(
            f"{len(result.messages)} message(s), {result.token_count}/{budget} tokens",
            file=sys.stderr,
        )
    except PromptError as e:
        print(f"Error: {e}", file=sys.stderr)
        for detail in getattr(e, "errors", []):
            print(f"  - {detail}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
