"""Interactive git branch checkout.

Features:
- List local and remote-tracking branches, newest first
- Pick one with the arrow keys (or j/k) and check it out
- Filter the list by typing after "/"
- Remote branches check out as local tracking branches
- Open pull request numbers shown when the gh CLI is available
"""

import os

# Let GitPython import without a git executable so a missing git surfaces as
# ToolUnavailableError instead of an ImportError.
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

__version__ = "0.1.0"
