"""
PR Reviewer Assignment Service

A backend service that assigns code reviewers to pull requests from the
author's team and manages the review lifecycle (merge, reassignment).
"""

__version__ = "1.0.0"
__author__ = "PR Reviewer Team"
