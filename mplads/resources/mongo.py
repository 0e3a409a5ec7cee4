"""MongoDB Resource for Dagster."""

from contextlib import contextmanager

from dagster import ConfigurableResource
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from mplads import config


class MongoDBResource(ConfigurableResource):
    """
    Dagster resource for the MPLADS MongoDB database.

    Usage in asset:
        @asset
        def my_asset(mongo: MongoDBResource):
            with mongo.get_client() as client:
                db = mongo.get_database(client)
                store = MongoRecordStore(db)
    """

    connection_string: str = config.MONGO_CONNECTION_STRING
    """MongoDB connection string (MONGO_CONNECTION_STRING)"""

    database_name: str = config.MONGO_DATABASE
    """Database holding mps, allocations, expenditures, works and summaries"""

    @contextmanager
    def get_client(self):
        """
        Get a MongoDB client as a context manager.

        Yields:
            MongoClient: Connected MongoDB client
        """
        client = MongoClient(self.connection_string)
        try:
            client.admin.command('ping')
            yield client
        finally:
            client.close()

    def get_database(self, client: MongoClient) -> Database:
        return client[self.database_name]

    def get_collection(self, client: MongoClient, collection_name: str) -> Collection:
        """
        Get a collection from the MPLADS database.

        Args:
            client: MongoDB client
            collection_name: Name of the collection (e.g. "summaries")

        Returns:
            Collection: MongoDB collection
        """
        return self.get_database(client)[collection_name]


# Default resource instance
mongo_resource = MongoDBResource(
    connection_string=config.MONGO_CONNECTION_STRING,
    database_name=config.MONGO_DATABASE,
)
