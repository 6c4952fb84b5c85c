"""Build-info VCS collector.

Records the git remote URL and revision of a checkout in a partial
build-info record, and scans the commit log since the last published build
for issue-tracker references ("affected issues").
"""

__version__ = "0.1.0"
