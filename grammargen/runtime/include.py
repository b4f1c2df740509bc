# ==========================================
# EMBEDDED GRAMMAR FILES
# ==========================================
import os


def _include_str(relative_path):
    """Read a file below the grammars root as UTF-8 text."""
    path = os.path.join(_GRAMMARS_DIR, *relative_path.split("/"))
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
