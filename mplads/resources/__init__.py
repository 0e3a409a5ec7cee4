"""Dagster resources for the MPLADS tracker."""
from mplads.resources.mongo import mongo_resource, MongoDBResource

__all__ = [
    "mongo_resource",
    "MongoDBResource",
]
