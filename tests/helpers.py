from pathlib import Path

# Scores 100 on its own: medium chunk, imports, an __init__ class, a
# docstring, a full-sentence comment and four token kinds.
AI_LIKE_PYTHON = '''import os
from typing import List


class FileCollector(object):
    """Collect the files found below a directory."""

    def __init__(self, root):
        # Remember the root directory for later walks
        self.root = root

    def collect(self) -> List[str]:
        try:
            return sorted(os.listdir(self.root))
        except OSError:
            return []
'''

HUMAN_LIKE_PYTHON = "x = 1\n"

ADD_JS = "/** adds two numbers */\nfunction add(a,b){return a+b;}\nexport default add;"


def stage(repo, rel_path: str, content: str) -> Path:
    path = Path(repo.working_tree_dir) / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    repo.index.add([rel_path])
    return path


def commit(repo, message: str = "Add code"):
    return repo.index.commit(message)
