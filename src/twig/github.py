"""Open pull request lookup through the gh CLI."""

import json
import subprocess
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from twig.git import BranchRecord
from twig.logger import get_logger

logger = get_logger(__name__)

PR_LIST_COMMAND = ["gh", "pr", "list", "--json", "headRefName,number", "--limit", "1000"]


def get_pr_map(cwd: Path) -> dict[str, int]:
    """Map head branch names to open pull request numbers.

    Pull request numbers are decoration only: a missing gh, a repository gh
    does not know, or unexpected output all give an empty map.
    """
    try:
        result = subprocess.run(PR_LIST_COMMAND, capture_output=True, text=True, cwd=cwd, check=False)
    except OSError as err:
        logger.debug("gh not available: %s", err)
        return {}

    if result.returncode != 0:
        logger.debug("gh pr list exited %s: %s", result.returncode, result.stderr.strip())
        return {}

    try:
        prs = json.loads(result.stdout)
        return {pr["headRefName"]: int(pr["number"]) for pr in prs}
    except (ValueError, TypeError, KeyError) as err:
        logger.debug("Could not read gh pr list output: %s", err)
        return {}


def annotate_prs(records: Sequence[BranchRecord], pr_map: dict[str, int]) -> list[BranchRecord]:
    """Attach pull request numbers to branch records, keeping their order."""
    if not pr_map:
        return list(records)
    return [replace(record, pr_number=pr_map.get(record.local_name)) for record in records]
