"""LocalRank: ranking analytics and agency tooling for local-business portfolios."""

__version__ = "1.0.0"
