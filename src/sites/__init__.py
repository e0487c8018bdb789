"""
Sites Module
-----------
Owner-managed campsite records. The geohash is computed once at creation and
the rating aggregate is left to the review coordinator.
"""
