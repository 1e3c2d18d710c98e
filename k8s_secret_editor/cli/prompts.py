"""Terminal prompts for picking namespaces, secrets and keys."""
from typing import Callable, List

from ..errors import PromptError

PAGE_SIZE = 10


class TerminalPrompter:
    """
    Line-based selection and confirmation on the controlling terminal.

    A selection shows a numbered list. The user answers with a number or the
    start of a name (case-insensitive); a prefix matching exactly one option
    selects it, otherwise the list is narrowed to the matches. An exact option
    name wins over a list number, so "#3" always means the third entry.
    """

    def __init__(self, input_func: Callable[[str], str] = input, print_func: Callable[..., None] = print):
        self._input = input_func
        self._print = print_func

    def _ask(self, prompt: str) -> str:
        try:
            return self._input(prompt).strip()
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptError("Prompt failed: input closed") from e
        except OSError as e:
            raise PromptError(f"Prompt failed: {e}") from e

    def select(self, label: str, options: List[str]) -> str:
        if not options:
            raise PromptError(f"{label}: nothing to select")

        candidates = list(options)
        while True:
            self._print(f"{label}:")
            for i, option in enumerate(candidates[:PAGE_SIZE], start=1):
                self._print(f"  {i}. {option}")
            if len(candidates) > PAGE_SIZE:
                self._print(f"  ... {len(candidates) - PAGE_SIZE} more, type a prefix to narrow")

            answer = self._ask(f"Enter choice (1-{min(len(candidates), PAGE_SIZE)}) or prefix: ")
            if not answer:
                candidates = list(options)
                continue

            if answer in options:
                return answer

            number = answer[1:] if answer.startswith("#") else answer
            if number.isdigit():
                index = int(number)
                if 1 <= index <= min(len(candidates), PAGE_SIZE):
                    return candidates[index - 1]
                self._print("Invalid choice.")
                continue

            matches = [o for o in options if o.lower().startswith(answer.lower())]
            if len(matches) == 1:
                return matches[0]
            if not matches:
                self._print(f"No match for '{answer}'.")
                candidates = list(options)
            else:
                candidates = matches

    def confirm(self, label: str) -> bool:
        try:
            response = self._input(f"{label} (y/N): ")
        except (EOFError, KeyboardInterrupt, OSError):
            self._print()
            return False
        return response.strip().lower() in ("y", "yes")
