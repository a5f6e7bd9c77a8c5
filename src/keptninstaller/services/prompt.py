"""Interactive prompts for credential fields and confirmations."""

from typing import Callable, Optional

from keptninstaller.models import CREDENTIAL_FIELDS, CredentialRecord


class PromptService:
    """Reads operator input, validating each field against its format rule."""

    def __init__(self, console, input_func: Optional[Callable[[str], str]] = None):
        self.console = console
        self.input_func = input_func or self._console_input

    def _console_input(self, prompt: str) -> str:
        # Labels carry the current value in brackets, which rich would parse as markup.
        return self.console.input(prompt, markup=False)

    def _ask(self, prompt: str) -> str:
        raw = self.input_func(prompt)
        return (raw or "").replace("\r\n", "\n").strip()

    def read_field(self, record: CredentialRecord, name: str) -> CredentialRecord:
        """Prompts for one field and returns the record with the accepted value.

        A blank answer keeps a non-empty current value. Anything else must match
        the field's rule; otherwise the violation message is shown and the prompt
        repeats with the current value untouched.
        """
        spec = CREDENTIAL_FIELDS[name]
        current = getattr(record, name)

        while True:
            answer = self._ask(f"{spec.label} [{current}]: ")
            if not answer and current:
                return record
            if spec.is_valid(answer):
                return record.with_values(**{name: answer})
            self.console.print(f"[yellow]{spec.violation_message}[/yellow]")

    def confirm(self, question: str) -> bool:
        answer = self._ask(f"{question} (y/n) ")
        return answer.lower() in ("y", "yes")
