from datetime import datetime
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from queueup.config import logger
from queueup.errors import DatabaseException
from queueup.tenant.models import TenantConfig

config_logger = logger.getChild("db")


async def load_config(db: AsyncSession, tenant_id: str) -> TenantConfig:
    """Load a tenant's configuration, creating the default record on first use."""
    try:
        result = await db.execute(
            select(TenantConfig).where(TenantConfig.tenant_id == tenant_id)
        )
        config = result.scalar_one_or_none()
        if config:
            return config

        config = TenantConfig(tenant_id=tenant_id)
        db.add(config)
        await db.commit()
        await db.refresh(config)
        config_logger.info(f"Created default configuration for tenant {tenant_id}")
        return config
    except SQLAlchemyError as e:
        await db.rollback()
        config_logger.error(f"Error loading config for tenant {tenant_id}: {str(e)}")
        raise DatabaseException(detail="Failed to load tenant configuration")


async def save_config(
    db: AsyncSession, tenant_id: str, patch: Dict[str, Any]
) -> TenantConfig:
    """Apply a partial update to a tenant's configuration."""
    config = await load_config(db, tenant_id)
    try:
        for key, value in patch.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown configuration key: {key}")
            setattr(config, key, value)
        config.updated_at = datetime.utcnow()
        db.add(config)
        await db.commit()
        await db.refresh(config)
        config_logger.info(
            f"Updated configuration for tenant {tenant_id}: {sorted(patch)}"
        )
        return config
    except SQLAlchemyError as e:
        await db.rollback()
        config_logger.error(f"Error saving config for tenant {tenant_id}: {str(e)}")
        raise DatabaseException(detail="Failed to save tenant configuration")


async def advance_queue_number(db: AsyncSession, tenant_id: str) -> int:
    """Move the tenant's session counter forward and return the new value."""
    config = await load_config(db, tenant_id)
    updated = await save_config(
        db, tenant_id, {"queue_number": config.queue_number + 1}
    )
    return updated.queue_number
