import json
from datetime import datetime
from typing import Any
import typer
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from doctainer.utils.diagnostics import DoctainerDiagnostic

# Create a stderr console for logging
error_console = Console(stderr=True)

SEVERITY_RANKS = {
    "debug": 10,
    "info": 20,
    "success": 20,
    "warning": 30,
    "error": 40,
    "critical": 50,
}

TIMESTAMP_FORMAT = "%d-%m-%YT%H:%M:%S%z"


class OutputFormatter:
    """
    Handles output formatting for the CLI.
    Ensures separation of concerns between System Logs (stderr) and Data (stdout).
    """

    threshold: int = SEVERITY_RANKS["info"]

    @classmethod
    def configure(cls, log_level: str = "INFO", quiet: bool = False) -> None:
        """
        Set the minimum severity printed. ``quiet`` keeps only errors.
        """
        level = "error" if quiet else log_level.lower()
        cls.threshold = SEVERITY_RANKS.get(level, SEVERITY_RANKS["info"])

    @classmethod
    def log(cls, message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        if SEVERITY_RANKS.get(severity, SEVERITY_RANKS["info"]) < cls.threshold:
            return

        style = "white"
        prefix = "*"

        if severity == "debug":
            style = "dim"
        elif severity == "warning":
            style = "yellow"
            prefix = "WARN:"
        elif severity == "error":
            style = "red"
            prefix = f"[{cls.timestamp()}]:"
        elif severity == "critical":
            style = "bold red"
            prefix = f"[{cls.timestamp()}]:"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]{escape(prefix)} {escape(message)}[/{style}]", soft_wrap=True)

    @staticmethod
    def timestamp() -> str:
        return datetime.now().astimezone().strftime(TIMESTAMP_FORMAT)

    @classmethod
    def print_diagnostic(cls, diagnostic: DoctainerDiagnostic) -> None:
        """
        Print a failure diagnostic, with its suggestion when there is one.
        """
        cls.log(str(diagnostic), severity=diagnostic.severity)
        if diagnostic.suggestion:
            cls.log(diagnostic.suggestion, severity="info")

    @staticmethod
    def print_data(data: Any) -> None:
        """
        Print a result to stdout as JSON.
        """
        if isinstance(data, BaseModel):
            typer.echo(data.model_dump_json(indent=2))
            return
        typer.echo(json.dumps(data, indent=2, default=str))
