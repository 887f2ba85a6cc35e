from flask import current_app
from redis import Redis
from rq import Queue

from ..store import MongoDocumentStore
from ..utils.logger import Log


class DocumentDB:
    """Binds a DocumentStore to the Flask app. Tests pass an in-memory store."""

    def init_app(self, app, store=None):
        if store is None:
            store = MongoDocumentStore.from_uri(app.config["MONGO_URI"], app.config["DB_NAME"])
            # create indexes (runs once on startup)
            store.ensure_indexes()
            Log.info(f"[db.py][DocumentDB] connected to MongoDB database {app.config['DB_NAME']}")
        app.extensions["document_store"] = store
        return store


class RedisConnection:
    def __init__(self):
        self.connection = None
        self.queue = None

    def init_app(self, app):
        self.connection = Redis(host=app.config["REDIS_HOST"], port=app.config["REDIS_PORT"])
        self.queue = Queue("emails", connection=self.connection)
        app.extensions["mail_queue"] = self.queue


def get_store():
    return current_app.extensions["document_store"]


# Export the instances
db = DocumentDB()
redis_connection = RedisConnection()
