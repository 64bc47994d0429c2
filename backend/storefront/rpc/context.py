from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Config
from storefront.services.image_service import ImageStore


@dataclass
class Context:
    """Per-call dependencies handed to every procedure."""

    session: AsyncSession
    images: ImageStore
    image_failure_policy: str = Config.IMAGE_FAILURE_POLICY
