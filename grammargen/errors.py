"""
Error handling utilities for the grammar binding generator.
"""


class GrammarBuildError(Exception):
    """Fatal generation error. Aborts the whole build, nothing is written."""
    def __init__(self, message, path=None, context=None, suggestion=None):
        self.message = message
        self.path = path
        self.context = context  # Underlying tool output or OS error text
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with path, context and suggestion."""
        lines = ["\n❌ Generation Error"]
        if self.path:
            lines.append(f" in {self.path}")
        lines.append(":\n")

        lines.append(f"   {self.message}\n")

        if self.context:
            for line in str(self.context).strip().splitlines():
                lines.append(f"   > {line}\n")

        if self.suggestion:
            lines.append(f"   💡 {self.suggestion}\n")

        return "".join(lines)


def describe_os_error(error):
    """Short description of an OSError for use as error context."""
    if error.strerror:
        return f"{type(error).__name__}: {error.strerror}"
    return str(error)
