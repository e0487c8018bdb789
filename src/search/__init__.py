"""
Search Module
------------
Public campsite search: geohash-bounded radius queries, text/rating/photo
filters, ranking, pagination and public-safe projection of results.
"""
