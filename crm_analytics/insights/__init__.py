"""
Insight and recommendation generation.

Modules
-------
generator   : one ``analyze_*`` function per business domain +
              ``generate_insights()`` which runs them all.
recommender : insight -> action-plan rules + ``generate_recommendations()``.
"""
