"""Client advisor: product recommendations and monthly update fields."""

from localrank.modules.advisor.recommender import ClientAdvisor

__all__ = ["ClientAdvisor"]
