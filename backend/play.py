#!/usr/bin/env python3
"""Interactive CLI script to playtest a story against a running server.

Usage:
    python play.py you@example.com                 # plays the island story
    python play.py you@example.com zombie          # plays another theme
    python play.py you@example.com island --restart

Start the API first (``uvicorn survival.main:app``). Set SURVIVAL_API_URL
to point somewhere other than http://localhost:8000.
"""

import os
import sys

import requests

API_URL = os.environ.get("SURVIVAL_API_URL", "http://localhost:8000")

# --- ANSI Colors ---
DIVIDER = "\033[90m" + "─" * 50 + "\033[0m"
RESET = "\033[0m"
DIM = "\033[90m"
BOLD = "\033[1m"
YELLOW = "\033[93m"
RED = "\033[91m"
GREEN = "\033[92m"


class Client:
    """Thin wrapper around the progress API for one player and story."""

    def __init__(self, email: str, story: str):
        self.session = requests.Session()
        self.session.headers["X-User-Email"] = email
        self.params = {"story": story}

    def _call(self, method: str, path: str, **kwargs) -> dict | list:
        resp = self.session.request(
            method, f"{API_URL}/api/progress{path}", params=self.params, timeout=10, **kwargs
        )
        resp.raise_for_status()
        return resp.json()

    def position(self) -> dict:
        return self._call("GET", "/position")

    def decision(self, decision_id: str) -> dict:
        return self._call("GET", f"/decisions/{decision_id}")

    def choose(self, decision_id: str, choice_id: int) -> dict:
        return self._call("POST", "/choice", json={"decision_id": decision_id, "choice_id": choice_id})

    def restart(self) -> dict:
        return self._call("POST", "/restart")


def display_stats(position: dict):
    shown = position["display"]
    print(
        f"  {YELLOW}Condition {shown['condition']}%  "
        f"Morale {shown['morale']}%  Resources {shown['resources']}{RESET}"
    )


def display_node(view: dict):
    node = view["node"]
    print()
    print(DIVIDER)
    if node["decision_number"] > 0:
        print(f"  {DIM}Decision {node['decision_number']}{RESET}")
    print(f"  {BOLD}{node.get('title') or node['decision_id']}{RESET}")
    text = node.get("text", "")
    if text and text.strip():
        print(f"  {text.strip()}")
    for prompt in node.get("reflective_prompts", []):
        print(f"  {DIM}? {prompt}{RESET}")


def choose(choices: list[dict]) -> dict:
    """Print available choices and return the player's selection."""
    print()
    for i, c in enumerate(choices, start=1):
        deltas = f"morale {c['morale']:+.2f}, condition {c['condition']:+.2f}, resources {c['resources']:+d}"
        print(f"  \033[97m{i}\033[0m. {c['title'] or c['target_key']}  {DIM}({deltas}){RESET}")
    print()

    while True:
        raw = input(f"  Choose (1-{len(choices)}): ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(choices):
            return choices[int(raw) - 1]
        print(f"  {RED}Invalid choice, enter a number from 1 to {len(choices)}{RESET}")


def play(client: Client):
    while True:
        position = client.position()
        view = client.decision(position["decision_id"])
        display_node(view)
        display_stats(position)

        if position["is_finished"]:
            print()
            print(DIVIDER)
            print(f"\n{BOLD}  ── The End ──{RESET}\n")
            break

        choices = view["node"]["choices"]
        if not choices:
            print(f"\n{RED}[error] {position['decision_id']} has no choices{RESET}")
            break

        picked = choose(choices)
        client.choose(position["decision_id"], picked["id"])
        print(f"  {GREEN}Decision saved.{RESET}")


def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    if not args:
        print(__doc__)
        sys.exit(1)
    email = args[0]
    story = args[1] if len(args) > 1 else "island"

    client = Client(email, story)
    if "--restart" in sys.argv:
        result = client.restart()
        print(f"  {DIM}{result['message']} ({result['deleted']} records removed){RESET}")
    play(client)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print(f"\n\n{DIM}Game exited.{RESET}")
    except requests.exceptions.RequestException as e:
        print(f"{RED}{e}{RESET}")
