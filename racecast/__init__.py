"""
racecast

Live horse-race win-probability predictions: feature engineering, a
four-model scoring ensemble, polling agents and subscription quotas.
"""

__version__ = "1.0.0"
