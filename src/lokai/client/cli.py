"""CLI client for the Lokai API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    List,
    Tuple,
    cast,
)

import httpx

from lokai.common import (
    AnsiColors,
    colored_print,
)
from lokai.config import settings

logger = logging.getLogger(__name__)

HELP_TEXT = "Commands: /models, /model <name>, /agent on|off, exit"


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    method: str,
    endpoint: str,
    data: Dict[str, Any] | None = None,
    max_retries: int = 5,
    base_url: str | None = None,
) -> Dict[str, Any]:
    """Call the API and return the decoded JSON body, retrying while the server starts.

    Errors are returned as ``{"error": "..."}`` rather than raised.
    """
    api_url = f"{base_url or f'http://localhost:{settings.API_PORT}'}{endpoint}"
    # The agent loop may run several model calls back to back.
    timeout = settings.REQUEST_TIMEOUT * settings.MAX_AGENT_LOOPS

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.request(method, api_url, json=data)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.ConnectError as e:
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            logger.error("API connection error: %s", e)
            return {"error": f"Error connecting to API: {e}"}
        except httpx.HTTPStatusError as e:
            detail = str(e)
            try:
                detail = str(e.response.json().get("detail", detail))
            except (ValueError, AttributeError):
                pass
            logger.error("API returned an error: %s", detail)
            return {"error": f"API error: {detail}"}
        except httpx.HTTPError as e:
            logger.error("API request error: %s", e)
            return {"error": f"Error calling API: {e}"}

    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def print_steps(steps: List[Dict[str, Any]]) -> None:
    """Print the tool calls executed during one agent turn."""
    for number, step in enumerate(steps, start=1):
        colored_print(
            f"  [{number}] {step['tool']}({step['args']}) - {step['duration_ms']} ms",
            AnsiColors.GREY,
        )
        colored_print(f"      {step['result'][:200]}", AnsiColors.GREEN)


def handle_command(command: str, state: Dict[str, Any]) -> None:
    """Handle a slash command typed at the prompt."""
    name, _, arg = command.partition(" ")
    arg = arg.strip()
    if name == "/models":
        response = call_api("GET", "/models")
        if "error" in response:
            colored_print(response["error"], AnsiColors.RED)
            return
        for model in response["models"] or ["(none found)"]:
            marker = "*" if model == response["active"] else " "
            colored_print(f" {marker} {model}", AnsiColors.YELLOW)
    elif name == "/model" and arg:
        response = call_api("PUT", "/models/active", {"name": arg})
        colored_print(
            response.get("error") or f"Active model: {response['active']}",
            AnsiColors.RED if "error" in response else AnsiColors.GREEN,
        )
    elif name == "/agent" and arg in {"on", "off"}:
        state["agent_mode"] = arg == "on"
        mode = "enabled" if state["agent_mode"] else "disabled"
        colored_print(f"Agent mode {mode}", AnsiColors.GREEN)
    else:
        colored_print(HELP_TEXT, AnsiColors.YELLOW)


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    state: Dict[str, Any] = {"agent_mode": True}
    history: List[Dict[str, str]] = []

    colored_print("\n🔮 Lokai shell - type 'exit' (or Ctrl+C) to quit", AnsiColors.GREEN)
    colored_print(HELP_TEXT, AnsiColors.GREY)
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue
        if user_msg.startswith("/"):
            handle_command(user_msg, state)
            continue

        response = call_api(
            "POST",
            "/agent",
            {"message": user_msg, "history": history, "agent_mode": state["agent_mode"]},
        )
        if "error" in response:
            colored_print(response["error"], AnsiColors.RED)
            continue

        print_steps(response.get("steps") or [])
        colored_print(response["text"], AnsiColors.YELLOW)

        context = response.get("context")
        if context:
            colored_print(
                f"[context ~{context['total_tokens']} tokens, {context['usage_percent']:.0%}]",
                AnsiColors.GREY,
            )

        history.append({"role": "user", "content": user_msg})
        history.append({"role": "assistant", "content": response["text"]})


if __name__ == "__main__":
    run_cli()
