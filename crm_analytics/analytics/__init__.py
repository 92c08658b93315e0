"""
Statistical models behind the insight engine. Pure functions, no I/O.

Modules
-------
scoring      : lead scoring + grading, churn probability + risk level.
segmentation : RFM scores and the 11-bucket customer segmentation.
forecasting  : OLS trend forecast with seasonality and confidence decay;
               customer-growth projection; series builders.
attribution  : first/last-touch, linear and time-decay attribution.
optimization : price and inventory suggestions.
competitive  : market share, price position and threat level per competitor.
"""
