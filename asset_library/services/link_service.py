"""
Link Registry Service for Asset Library.

Maintains the associations between assets and services / sub-services.

Link kinds:
- Static: created together with the asset at upload time. A static link can
  never be removed through this service; it only goes away when the asset
  itself is deleted.
- Dynamic: created and removed later by users holding manage_links.

At most one link exists per (asset, service) and per (asset, sub-service)
pair. Creating a static link where a dynamic one exists promotes it to
static; creating a dynamic link where any link exists returns the existing
link unchanged.

Links are only shown to consumers while the asset's linking_active flag is
set, which the QC workflow engine maintains (see workflow_service.py). This
service never commits; the caller owns the transaction.

Usage:
    link = LinkService.create_dynamic_link(db.session, asset_id=7, service_id=3, created_by=12)
    db.session.commit()

    assets = LinkService.list_linked_assets(db.session, service_id=3)
"""

import logging
from typing import Any, Dict, List, Optional

from asset_library.errors import NotFound, StaticLinkProtected, ValidationError
from asset_library.models.asset import Asset
from asset_library.models.link import ServiceAssetLink, SubServiceAssetLink
from asset_library.models.service import Service, SubService
from asset_library.store import Store


logger = logging.getLogger(__name__)


STATIC_LINK_REMOVAL_MESSAGE = 'Cannot remove static service link created during upload'

# Asset columns returned alongside link metadata in listings
_LISTING_COLUMNS = """
    a.id, a.name, a.asset_type, a.asset_category, a.asset_format,
    a.application_type, a.file_url, a.status, a.qc_status, a.workflow_stage,
    a.linking_active, a.created_at,
    l.is_static AS link_is_static, l.created_at AS linked_at, l.created_by AS linked_by
"""


def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce driver-specific booleans and datetimes into JSON-friendly values."""
    result = dict(row)
    for key in ('link_is_static', 'linking_active', 'is_static'):
        if key in result and result[key] is not None:
            result[key] = bool(result[key])
    for key in ('created_at', 'linked_at'):
        value = result.get(key)
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result


class LinkService:
    """
    Registry of asset <-> service and asset <-> sub-service links.

    This service handles:
    1. Creating static (upload-time) and dynamic links
    2. Removing dynamic links, refusing static ones
    3. Listing the assets linked to a service or sub-service
    4. Re-evaluating link visibility after a QC decision
    """

    # ==========================================================================
    # Creation
    # ==========================================================================

    @classmethod
    def create_static_link(
        cls,
        db_session,
        asset_id: int,
        service_id: Optional[int] = None,
        sub_service_id: Optional[int] = None,
        created_by: Optional[int] = None
    ):
        """
        Create a static link (upload-time link that cannot be removed).

        A second static link for the same pair is a no-op; an existing
        dynamic link for the pair is promoted to static.

        Args:
            db_session: SQLAlchemy database session
            asset_id: Asset being linked
            service_id: Target service (exactly one of service_id / sub_service_id)
            sub_service_id: Target sub-service
            created_by: User creating the link

        Returns:
            ServiceAssetLink or SubServiceAssetLink

        Raises:
            ValidationError: Neither or both targets given
            NotFound: Asset or target does not exist
        """
        return cls._create_link(db_session, asset_id, service_id, sub_service_id, created_by, is_static=True)

    @classmethod
    def create_dynamic_link(
        cls,
        db_session,
        asset_id: int,
        service_id: Optional[int] = None,
        sub_service_id: Optional[int] = None,
        created_by: Optional[int] = None
    ):
        """
        Create a dynamic (removable) link.

        If any link already exists for the pair it is returned unchanged, so
        a static link is never downgraded.
        """
        return cls._create_link(db_session, asset_id, service_id, sub_service_id, created_by, is_static=False)

    @classmethod
    def _create_link(cls, db_session, asset_id, service_id, sub_service_id, created_by, is_static):
        model, target_field, target_id = cls._resolve_target(service_id, sub_service_id)

        if db_session.get(Asset, asset_id) is None:
            raise NotFound(f'Asset {asset_id} not found')
        cls._require_target(db_session, service_id, sub_service_id)

        existing = db_session.query(model).filter(
            model.asset_id == asset_id,
            getattr(model, target_field) == target_id
        ).first()

        if existing is not None:
            if is_static and not existing.is_static:
                existing.is_static = True
                logger.info(f'Promoted link asset={asset_id} {target_field}={target_id} to static')
            return existing

        link = model(asset_id=asset_id, is_static=is_static, created_by=created_by)
        setattr(link, target_field, target_id)
        db_session.add(link)
        db_session.flush()

        logger.info(
            f"Created {'static' if is_static else 'dynamic'} link "
            f'asset={asset_id} {target_field}={target_id}'
        )
        return link

    @classmethod
    def _resolve_target(cls, service_id, sub_service_id):
        if bool(service_id) == bool(sub_service_id):
            raise ValidationError('Exactly one of service_id or sub_service_id is required')
        if service_id:
            return ServiceAssetLink, 'service_id', service_id
        return SubServiceAssetLink, 'sub_service_id', sub_service_id

    @classmethod
    def _require_target(cls, db_session, service_id, sub_service_id):
        if service_id and db_session.get(Service, service_id) is None:
            raise NotFound(f'Service {service_id} not found')
        if sub_service_id and db_session.get(SubService, sub_service_id) is None:
            raise NotFound(f'Sub-service {sub_service_id} not found')

    # ==========================================================================
    # Removal
    # ==========================================================================

    @classmethod
    def remove_link(cls, db_session, asset_id: int, service_id: int) -> None:
        """
        Remove a dynamic asset <-> service link.

        Raises:
            NotFound: No link exists for the pair
            StaticLinkProtected: The link is static
        """
        cls._remove(db_session, asset_id, service_id=service_id)

    @classmethod
    def remove_sub_service_link(cls, db_session, asset_id: int, sub_service_id: int) -> None:
        """
        Remove a dynamic asset <-> sub-service link.

        Raises:
            NotFound: No link exists for the pair
            StaticLinkProtected: The link is static
        """
        cls._remove(db_session, asset_id, sub_service_id=sub_service_id)

    @classmethod
    def _remove(cls, db_session, asset_id, service_id=None, sub_service_id=None):
        model, target_field, target_id = cls._resolve_target(service_id, sub_service_id)

        link = db_session.query(model).filter(
            model.asset_id == asset_id,
            getattr(model, target_field) == target_id
        ).first()

        if link is None:
            raise NotFound('Link not found')

        if link.is_static:
            logger.warning(
                f'Refused removal of static link asset={asset_id} {target_field}={target_id}'
            )
            raise StaticLinkProtected(STATIC_LINK_REMOVAL_MESSAGE)

        db_session.delete(link)
        db_session.flush()
        logger.info(f'Removed link asset={asset_id} {target_field}={target_id}')

    # ==========================================================================
    # Queries
    # ==========================================================================

    @classmethod
    def list_linked_assets(cls, db_session, service_id: int, active_only: bool = False) -> List[Dict[str, Any]]:
        """
        List the assets linked to a service, most recently linked first.

        Each row carries the asset fields plus link_is_static, linked_at and
        linked_by. An unknown service yields an empty list.

        Args:
            db_session: SQLAlchemy database session
            service_id: The service
            active_only: Only include assets whose linking_active is set

        Returns:
            List of dicts
        """
        sql = f"""
            SELECT {_LISTING_COLUMNS}
            FROM assets a
            JOIN service_asset_links l ON a.id = l.asset_id
            WHERE l.service_id = :target_id
        """
        return cls._list(db_session, sql, service_id, active_only)

    @classmethod
    def list_sub_service_linked_assets(
        cls,
        db_session,
        sub_service_id: int,
        active_only: bool = False
    ) -> List[Dict[str, Any]]:
        """List the assets linked to a sub-service, most recently linked first."""
        sql = f"""
            SELECT {_LISTING_COLUMNS}
            FROM assets a
            JOIN subservice_asset_links l ON a.id = l.asset_id
            WHERE l.sub_service_id = :target_id
        """
        return cls._list(db_session, sql, sub_service_id, active_only)

    @classmethod
    def _list(cls, db_session, sql, target_id, active_only):
        params = {'target_id': target_id}
        if active_only:
            sql += ' AND a.linking_active = :active'
            params['active'] = True
        sql += ' ORDER BY l.created_at DESC, l.id DESC'

        result = Store(db_session).execute(sql, params)
        return [_normalize_row(row) for row in result.rows]

    @classmethod
    def get_static_links(cls, db_session, asset_id: int) -> Dict[str, List[Dict[str, Any]]]:
        """
        Get the static links of an asset with their target names.

        Returns:
            Dict with 'services' and 'sub_services' lists
        """
        store = Store(db_session)

        services = store.execute(
            """
            SELECT l.service_id, s.service_name, l.created_at
            FROM service_asset_links l
            JOIN services s ON s.id = l.service_id
            WHERE l.asset_id = :asset_id AND l.is_static = :static
            ORDER BY l.id
            """,
            {'asset_id': asset_id, 'static': True}
        ).rows

        sub_services = store.execute(
            """
            SELECT l.sub_service_id, ss.sub_service_name, ss.service_id, l.created_at
            FROM subservice_asset_links l
            JOIN sub_services ss ON ss.id = l.sub_service_id
            WHERE l.asset_id = :asset_id AND l.is_static = :static
            ORDER BY l.id
            """,
            {'asset_id': asset_id, 'static': True}
        ).rows

        return {
            'services': [_normalize_row(row) for row in services],
            'sub_services': [_normalize_row(row) for row in sub_services],
        }

    @classmethod
    def is_link_static(
        cls,
        db_session,
        asset_id: int,
        service_id: Optional[int] = None,
        sub_service_id: Optional[int] = None
    ) -> Optional[bool]:
        """
        Check whether the link for a pair is static.

        Returns:
            True/False for an existing link, None when no link exists
        """
        model, target_field, target_id = cls._resolve_target(service_id, sub_service_id)
        link = db_session.query(model).filter(
            model.asset_id == asset_id,
            getattr(model, target_field) == target_id
        ).first()
        if link is None:
            return None
        return bool(link.is_static)

    @classmethod
    def count_service_assets(cls, db_session, service_id: int) -> Dict[str, int]:
        """
        Count the assets linked to a service.

        Returns:
            Dict with total, static and dynamic counts
        """
        row = Store(db_session).fetch_one(
            """
            SELECT
                COUNT(*) AS total,
                COUNT(CASE WHEN is_static = :static THEN 1 END) AS static_count
            FROM service_asset_links
            WHERE service_id = :service_id
            """,
            {'service_id': service_id, 'static': True}
        ) or {}
        total = row.get('total') or 0
        static = row.get('static_count') or 0
        return {'total': total, 'static': static, 'dynamic': total - static}

    # ==========================================================================
    # Visibility
    # ==========================================================================

    @classmethod
    def sync_link_activation(cls, db_session, asset) -> int:
        """
        Re-evaluate link visibility after a workflow transition.

        Visibility is derived from asset.linking_active at query time, so no
        link rows change here; the method reports how many links became
        visible or hidden.

        Returns:
            Number of links the asset currently has
        """
        service_links = db_session.query(ServiceAssetLink).filter_by(asset_id=asset.id).count()
        sub_service_links = db_session.query(SubServiceAssetLink).filter_by(asset_id=asset.id).count()
        total = service_links + sub_service_links

        if total:
            state = 'visible' if asset.linking_active else 'hidden'
            logger.info(
                f'Asset {asset.id} links now {state} '
                f'({service_links} services, {sub_service_links} sub-services)'
            )
        return total
