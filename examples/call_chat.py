"""
Example Python client for calling the chat endpoint.

This script demonstrates how to ask the assistant a question and print the
answer together with the rows behind it.
"""
import json
import os
import sys
from typing import Any, Dict, List, Optional

import httpx

# Configuration
API_URL = os.environ.get("API_URL", "http://localhost:8000")


class ChatError(Exception):
    """Raised when the chat endpoint cannot be reached or rejects a question."""
    pass


def call_chat(query: str, system: Optional[str] = None) -> Dict[str, Any]:
    """
    Call the chat endpoint with a free-text question.

    Args:
        query: Free-text question
        system: Optional system name (wifi, pbx, tv, cabin_switch, field_cables, extracted)

    Returns:
        Chat response body
    """
    payload = {"query": query}
    if system:
        payload["system"] = system

    try:
        response = httpx.post(f"{API_URL}/chat", json=payload, timeout=60.0)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as http_err:
        try:
            detail = http_err.response.json().get("detail")
        except ValueError:
            detail = http_err.response.text
        raise ChatError(f"HTTP error calling chat endpoint: {http_err}. Response: {detail}") from http_err
    except httpx.RequestError as req_err:
        raise ChatError(f"Request error calling chat endpoint: {req_err}") from req_err


def _print_rows(rows: List[Dict[str, Any]]) -> None:
    print(f"Rows ({len(rows)}):")
    for i, row in enumerate(rows[:5]):
        print(f"  Row {i+1}: {json.dumps(row)}")
    if len(rows) > 5:
        print(f"  ... and {len(rows) - 5} more rows")
    print()


def print_results(body: Dict[str, Any]) -> None:
    print(f"\n=== {body.get('route')} ({body.get('system') or 'all systems'}) ===\n")
    print(body.get("answer", ""))
    print()
    if body.get("rows"):
        _print_rows(body["rows"])


def main():
    """Main function."""
    system = os.environ.get("SYSTEM")

    if len(sys.argv) > 1:
        query = " ".join(sys.argv[1:])
    else:
        query = input("Enter your question: ")

    try:
        print_results(call_chat(query, system))
    except ChatError as e:
        print(f"Chat Error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
