"""
Crime Land Use

Crime frequency by time of day, weekday and land use for one borough, and a
random-forest classifier predicting crime type from hour and land use.
"""

__version__ = "0.1.0"
