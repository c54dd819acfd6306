"""
Azure Cosmos DB Service
Provides data persistence for users, invitation codes, progress, practices
and feedback. User-owned containers use the user id as partition key.

Optimistic concurrency: documents carry their ETag (_etag); replace_item
with an etag only succeeds if the document is unchanged since it was read.
"""
import logging
from datetime import datetime
from typing import Optional
from azure.core import MatchConditions
from azure.cosmos import CosmosClient, PartitionKey, exceptions

from desirable.config import settings

logger = logging.getLogger(__name__)


class ConcurrencyConflictError(Exception):
    """Raised when an ETag-guarded write finds the document modified"""


class CosmosDBService:
    """Service for Azure Cosmos DB operations"""

    def __init__(self):
        self._client: Optional[CosmosClient] = None
        self.database_name = settings.COSMOS_DB_DATABASE_NAME
        self.database = None
        self.containers = {}

        # Container names from settings
        self.container_names = {
            "users": settings.COSMOS_DB_USERS_CONTAINER,
            "user_progress": settings.COSMOS_DB_USER_PROGRESS_CONTAINER,
            "practices": settings.COSMOS_DB_PRACTICES_CONTAINER,
            "feedback": settings.COSMOS_DB_FEEDBACK_CONTAINER,
            "invitation_codes": settings.COSMOS_DB_INVITATION_CODES_CONTAINER
        }

    @property
    def client(self) -> CosmosClient:
        """Build the client on first use from the resolved connection string."""
        if self._client is None:
            self._client = CosmosClient.from_connection_string(settings.database_url)
        return self._client

    async def initialize(self):
        """Initialize database and containers. Call on app startup."""
        try:
            self.database = self.client.create_database_if_not_exists(
                id=self.database_name
            )
            logger.info(f"Database '{self.database_name}' ready")

            for key, container_name in self.container_names.items():
                container = self.database.create_container_if_not_exists(
                    id=container_name,
                    partition_key=PartitionKey(path="/partitionKey"),
                    offer_throughput=400  # Minimum RU/s
                )
                self.containers[key] = container
                logger.info(f"Container '{container_name}' ready")

            return True
        except Exception as e:
            logger.error(f"Cosmos DB initialization error: {e}")
            raise

    def _get_container(self, container_key: str):
        """Get a container by key."""
        if container_key not in self.containers:
            container_name = self.container_names.get(container_key)
            if not container_name:
                raise ValueError(f"Unknown container key: {container_key}")
            if not self.database:
                self.database = self.client.get_database_client(self.database_name)
            self.containers[container_key] = self.database.get_container_client(container_name)
        return self.containers[container_key]

    # ==================== GENERIC CRUD OPERATIONS ====================

    async def create_item(
        self,
        container_key: str,
        item: dict,
        partition_key: str
    ) -> dict:
        """Create a new item in a container."""
        try:
            container = self._get_container(container_key)
            now = datetime.utcnow().isoformat()
            item["partitionKey"] = partition_key
            item.setdefault("createdAt", now)
            item["updatedAt"] = now
            result = container.create_item(body=item)
            logger.debug(f"Created item in {container_key}: {item.get('id')}")
            return result
        except exceptions.CosmosResourceExistsError:
            logger.warning(f"Item already exists in {container_key}: {item.get('id')}")
            raise
        except Exception as e:
            logger.error(f"Create item error in {container_key}: {e}")
            raise

    async def get_item(
        self,
        container_key: str,
        item_id: str,
        partition_key: str
    ) -> Optional[dict]:
        """Get an item by ID and partition key."""
        try:
            container = self._get_container(container_key)
            return container.read_item(item=item_id, partition_key=partition_key)
        except exceptions.CosmosResourceNotFoundError:
            return None
        except Exception as e:
            logger.error(f"Get item error in {container_key}: {e}")
            raise

    async def update_item(
        self,
        container_key: str,
        item_id: str,
        partition_key: str,
        updates: dict
    ) -> dict:
        """Read, merge updates and replace an item (last writer wins)."""
        try:
            container = self._get_container(container_key)
            item = container.read_item(item=item_id, partition_key=partition_key)
            item.update(updates)
            item["updatedAt"] = datetime.utcnow().isoformat()
            result = container.replace_item(item=item_id, body=item)
            logger.debug(f"Updated item in {container_key}: {item_id}")
            return result
        except Exception as e:
            logger.error(f"Update item error in {container_key}: {e}")
            raise

    async def replace_item(
        self,
        container_key: str,
        item: dict,
        partition_key: str,
        etag: Optional[str] = None
    ) -> dict:
        """
        Replace a whole item. With an etag the write only succeeds if the
        stored document still carries it.

        Raises:
            ConcurrencyConflictError: The document changed since it was read
        """
        try:
            container = self._get_container(container_key)
            item["partitionKey"] = partition_key
            item["updatedAt"] = datetime.utcnow().isoformat()
            if etag:
                result = container.replace_item(
                    item=item["id"],
                    body=item,
                    etag=etag,
                    match_condition=MatchConditions.IfNotModified
                )
            else:
                result = container.replace_item(item=item["id"], body=item)
            logger.debug(f"Replaced item in {container_key}: {item['id']}")
            return result
        except exceptions.CosmosAccessConditionFailedError:
            logger.info(f"ETag mismatch in {container_key}: {item.get('id')}")
            raise ConcurrencyConflictError(
                f"{container_key} item {item.get('id')} was modified concurrently"
            )
        except Exception as e:
            logger.error(f"Replace item error in {container_key}: {e}")
            raise

    async def query_items(
        self,
        container_key: str,
        query: str,
        parameters: Optional[list] = None,
        partition_key: Optional[str] = None
    ) -> list:
        """Query items using SQL."""
        try:
            container = self._get_container(container_key)
            return list(container.query_items(
                query=query,
                parameters=parameters or [],
                partition_key=partition_key,
                enable_cross_partition_query=partition_key is None
            ))
        except Exception as e:
            logger.error(f"Query error in {container_key}: {e}")
            raise

    async def count_items(
        self,
        container_key: str,
        where: str,
        parameters: Optional[list] = None,
        partition_key: Optional[str] = None
    ) -> int:
        results = await self.query_items(
            container_key,
            f"SELECT VALUE COUNT(1) FROM c WHERE {where}",
            parameters,
            partition_key
        )
        return results[0] if results else 0

    # ==================== USER OPERATIONS ====================

    async def create_user(self, user_data: dict) -> dict:
        """Create a new user."""
        return await self.create_item("users", user_data, user_data["id"])

    async def get_user(self, user_id: str) -> Optional[dict]:
        """Get user by ID."""
        return await self.get_item("users", user_id, user_id)

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        """Get user by email."""
        query = "SELECT * FROM c WHERE c.email = @email"
        parameters = [{"name": "@email", "value": email.lower()}]
        results = await self.query_items("users", query, parameters)
        return results[0] if results else None

    async def update_user(self, user_id: str, updates: dict) -> dict:
        """Update user data."""
        return await self.update_item("users", user_id, user_id, updates)

    # ==================== INVITATION CODES ====================

    async def get_invitation_code(self, code: str) -> Optional[dict]:
        return await self.get_item("invitation_codes", code, code)

    async def create_invitation_code(self, code_data: dict) -> dict:
        return await self.create_item("invitation_codes", code_data, code_data["code"])

    async def mark_invitation_code_used(self, code_document: dict, user_id: str) -> dict:
        """
        Mark a code as used by a user. Guarded by the document ETag so a
        code cannot be consumed twice by concurrent registrations.
        """
        code_document["isUsed"] = True
        code_document["usedAt"] = datetime.utcnow().isoformat()
        code_document["usedBy"] = user_id
        return await self.replace_item(
            "invitation_codes",
            code_document,
            code_document["code"],
            etag=code_document.get("_etag")
        )

    # ==================== USER PROGRESS ====================

    async def create_user_progress(self, progress_data: dict) -> dict:
        return await self.create_item("user_progress", progress_data, progress_data["userId"])

    async def get_user_progress(self, user_id: str, learning_subject: str) -> Optional[dict]:
        """Get the progress record for a user and learning subject."""
        item_id = f"progress_{user_id}_{learning_subject}"
        return await self.get_item("user_progress", item_id, user_id)

    async def replace_user_progress(self, progress_data: dict, etag: Optional[str]) -> dict:
        """Compare-and-set write of a progress record."""
        return await self.replace_item(
            "user_progress", progress_data, progress_data["userId"], etag=etag
        )

    # ==================== PRACTICES ====================

    async def create_practice(self, practice_data: dict) -> dict:
        return await self.create_item("practices", practice_data, practice_data["userId"])

    async def get_practice(self, practice_id: str) -> Optional[dict]:
        """Get a practice by ID (owner unknown, so cross-partition)."""
        query = "SELECT * FROM c WHERE c.id = @id"
        parameters = [{"name": "@id", "value": practice_id}]
        results = await self.query_items("practices", query, parameters)
        return results[0] if results else None

    async def close_practice(self, practice_data: dict, etag: Optional[str]) -> dict:
        """
        Persist a submitted practice. Guarded by the ETag read before
        evaluation so a racing duplicate submission is rejected.

        Raises:
            ConcurrencyConflictError: Someone else closed it first
        """
        if practice_data.get("userAnswer") is None:
            raise ValueError("A practice can only be closed with an answer")
        return await self.replace_item(
            "practices", practice_data, practice_data["userId"], etag=etag
        )

    async def get_practice_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10
    ) -> list:
        """Get a user's practices, newest first."""
        query = """
            SELECT * FROM c
            WHERE c.partitionKey = @user_id
            ORDER BY c.createdAt DESC
            OFFSET @offset LIMIT @limit
        """
        parameters = [
            {"name": "@user_id", "value": user_id},
            {"name": "@offset", "value": (page - 1) * limit},
            {"name": "@limit", "value": limit}
        ]
        return await self.query_items("practices", query, parameters, user_id)

    async def count_practices(self, user_id: str) -> int:
        parameters = [{"name": "@user_id", "value": user_id}]
        return await self.count_items(
            "practices", "c.partitionKey = @user_id", parameters, user_id
        )

    # ==================== FEEDBACK ====================

    async def create_feedback(self, feedback_data: dict) -> dict:
        return await self.create_item("feedback", feedback_data, feedback_data["userId"])

    async def find_question_feedback(self, user_id: str, practice_id: str) -> Optional[dict]:
        """Find the user's existing rating of a practice, if any."""
        query = """
            SELECT * FROM c
            WHERE c.partitionKey = @user_id
            AND c.feedbackType = 'question_rating'
            AND c.questionFeedback.practiceId = @practice_id
        """
        parameters = [
            {"name": "@user_id", "value": user_id},
            {"name": "@practice_id", "value": practice_id}
        ]
        results = await self.query_items("feedback", query, parameters, user_id)
        return results[0] if results else None

    async def update_feedback(self, feedback_data: dict) -> dict:
        return await self.replace_item("feedback", feedback_data, feedback_data["userId"])

    async def count_recent_general_feedback(self, user_id: str, since: datetime) -> int:
        """Count general feedback submitted by a user since a point in time."""
        parameters = [
            {"name": "@user_id", "value": user_id},
            {"name": "@since", "value": since.isoformat()}
        ]
        return await self.count_items(
            "feedback",
            "c.partitionKey = @user_id AND c.feedbackType = 'general_feedback' AND c.createdAt >= @since",
            parameters,
            user_id
        )

    async def get_feedback_history(self, user_id: str, limit: int = 20) -> list:
        """Get a user's latest feedback, newest first."""
        query = """
            SELECT * FROM c
            WHERE c.partitionKey = @user_id
            ORDER BY c.createdAt DESC
            OFFSET 0 LIMIT @limit
        """
        parameters = [
            {"name": "@user_id", "value": user_id},
            {"name": "@limit", "value": limit}
        ]
        return await self.query_items("feedback", query, parameters, user_id)


# Singleton instance
cosmos_db_service = CosmosDBService()
