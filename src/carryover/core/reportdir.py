"""Per-run report directories."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class ReportDir:
    """One timestamped directory per command execution.

    <log_root>/<session_name>/<command>-YYYYmmdd-HHMMSS/
    """

    def __init__(
        self, base_dir: Path, command: str, session_name: str | None = None
    ):
        timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
        if session_name:
            base_dir = base_dir / session_name

        self.run_dir = base_dir / f"{command}-{timestamp}"
        self.run_dir.mkdir(parents=True, exist_ok=True)

    def write(self, name: str, model: BaseModel) -> Path:
        """Write model as indented JSON to <run_dir>/<name>."""
        path = self.run_dir / name
        path.write_text(model.model_dump_json(indent=2) + "\n")
        return path
