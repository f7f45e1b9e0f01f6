"""Interactive terminal prompts."""

from __future__ import annotations

import re
from typing import Callable, Sequence

from win2go.exceptions import UserAbortError

YES_PATTERN = re.compile(r"^y(es)?$", re.IGNORECASE)

InputFunc = Callable[[str], str]


def ask(prompt: str, input_func: InputFunc = input) -> str:
    """Read one line, treating end of input as an abort."""
    try:
        return input_func(prompt).strip()
    except EOFError as error:
        raise UserAbortError("No input available") from error


def confirm(prompt: str, input_func: InputFunc = input) -> bool:
    """Yes/no question where only y or yes counts as yes."""
    try:
        answer = input_func(f"{prompt} ").strip()
    except EOFError:
        return False
    return bool(YES_PATTERN.match(answer))


def confirm_exact(prompt: str, expected: str = "YES", input_func: InputFunc = input) -> bool:
    try:
        answer = input_func(f"{prompt}: ").strip()
    except EOFError:
        return False
    return answer == expected


def choose(
    title: str,
    options: Sequence[str],
    input_func: InputFunc = input,
    output: Callable[[str], None] = print,
) -> int:
    """Show a numbered menu and return the zero-based index of the choice.

    Out-of-range or non-numeric answers are reported and asked again.

    Raises:
        UserAbortError: If input ends before a valid choice is made
        ValueError: If there are no options
    """
    if not options:
        raise ValueError("No options to choose from")
    output(title)
    for number, option in enumerate(options, start=1):
        output(f"{number}) {option}")
    while True:
        answer = ask(f"Choose [1-{len(options)}]: ", input_func)
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return int(answer) - 1
        output(f"Invalid choice: {answer or '(empty)'}")
