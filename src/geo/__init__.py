"""
Geo Module
---------
Geohash encoding and range bounds for the campsite index, plus the great-circle
refinement that trims the over-approximated geohash candidates back to a circle.
"""
