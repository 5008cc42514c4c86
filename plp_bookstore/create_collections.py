import logging

from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from plp_bookstore.schema import books_schema

logger = logging.getLogger(__name__)


def create_collections(db: Database, collection_name: str = "books") -> bool:
    """Create the books collection and attach the $jsonSchema validator.

    Returns False when the validator could not be applied (for example on a
    user without `collMod` rights); the collection is still usable then.
    """
    try:
        db.create_collection(collection_name)
        logger.info("Created collection '%s'", collection_name)
    except CollectionInvalid:
        # already exists
        pass

    try:
        db.command("collMod", collection_name, validator={"$jsonSchema": books_schema})
    except OperationFailure as e:
        logger.warning("Failed to apply validator to '%s': %s", collection_name, e)
        return False
    logger.info("Applied validation to collection '%s'", collection_name)
    return True
