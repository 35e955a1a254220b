"""Dep Inspector — risk-ranked report of a package's third-party dependencies.

Resolves the transitive dependency set, measures how much code (and how much
unsafe code) each top-level dependency drags in, and correlates it with
GitHub popularity and activity metrics.
"""

__version__ = "0.1.0"
