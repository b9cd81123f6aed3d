"""
Master Data Service for Asset Library.

Generic CRUD for the lookup tables administrators maintain. Each master model
declares REQUIRED_FIELDS, EDITABLE_FIELDS and optionally CHOICES; this
service validates against those declarations so adding a master table only
needs a model and an entry in MASTER_MODELS.

QC weightage configurations are special-cased: they carry a list of
checklist items whose weight_percentage values must add up to exactly 100.

Usage:
    country = MasterService.create(db.session, 'countries', {'country_name': 'India'})
    db.session.commit()

    config = MasterService.create(db.session, 'qc-weightage-configs', {
        'config_name': 'Blog QC',
        'items': [
            {'checklist_type': 'Grammar', 'weight_percentage': 60},
            {'checklist_type': 'SEO', 'weight_percentage': 40},
        ]
    })
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from asset_library.errors import NotFound, ValidationError
from asset_library.models.master import (
    Country,
    Platform,
    QCWeightageConfig,
    QCWeightageItem,
    SeoErrorType,
    WorkflowStage,
)


logger = logging.getLogger(__name__)


# URL kind -> model
MASTER_MODELS = {
    'countries': Country,
    'seo-error-types': SeoErrorType,
    'workflow-stages': WorkflowStage,
    'platforms': Platform,
    'qc-weightage-configs': QCWeightageConfig,
}

WEIGHTAGE_KIND = 'qc-weightage-configs'

# Allowed floating point slack when summing weights
WEIGHT_TOLERANCE = 0.01


class MasterService:
    """
    CRUD service for master data tables.

    Methods flush but do not commit; the caller owns the transaction.
    """

    @classmethod
    def get_model(cls, kind: str):
        """
        Resolve a URL kind to its model class.

        Raises:
            NotFound: Unknown master kind
        """
        model = MASTER_MODELS.get(kind)
        if model is None:
            raise NotFound(f"Unknown master type '{kind}'")
        return model

    @classmethod
    def list_records(cls, db_session, kind: str, status: Optional[str] = None) -> List:
        model = cls.get_model(kind)
        query = db_session.query(model)
        if status:
            query = query.filter(model.status == status)
        return query.order_by(model.id).all()

    @classmethod
    def get(cls, db_session, kind: str, record_id: int):
        model = cls.get_model(kind)
        record = db_session.get(model, record_id)
        if record is None:
            raise NotFound(f'{model.__name__} {record_id} not found')
        return record

    @classmethod
    def create(cls, db_session, kind: str, data: Dict[str, Any]):
        """
        Create a master record.

        Args:
            db_session: SQLAlchemy database session
            kind: Master type as used in URLs (e.g. 'countries')
            data: Field values; weightage configs also take 'items'

        Returns:
            The new record (flushed, not committed)

        Raises:
            ValidationError: Missing required field, invalid choice,
                duplicate unique value or invalid weightage items
        """
        model = cls.get_model(kind)
        values = cls._validate_fields(model, data, partial=False)

        record = model(**values)
        if kind == WEIGHTAGE_KIND:
            cls._replace_items(record, data.get('items'))

        db_session.add(record)
        cls._flush(db_session, model)
        logger.info(f'Created {model.__name__} {record.id}')
        return record

    @classmethod
    def update(cls, db_session, kind: str, record_id: int, data: Dict[str, Any]):
        """
        Update the editable fields of a master record.

        For weightage configs, passing 'items' replaces the whole item list.
        """
        record = cls.get(db_session, kind, record_id)
        model = type(record)
        values = cls._validate_fields(model, data, partial=True)

        for field, value in values.items():
            setattr(record, field, value)

        if kind == WEIGHTAGE_KIND and 'items' in data:
            cls._replace_items(record, data.get('items'))

        cls._flush(db_session, model)
        logger.info(f'Updated {model.__name__} {record.id}')
        return record

    @classmethod
    def delete(cls, db_session, kind: str, record_id: int) -> None:
        record = cls.get(db_session, kind, record_id)
        db_session.delete(record)
        db_session.flush()
        logger.info(f'Deleted {type(record).__name__} {record_id}')

    # ==========================================================================
    # Validation helpers
    # ==========================================================================

    @classmethod
    def _validate_fields(cls, model, data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')

        values = {
            field: data[field]
            for field in model.EDITABLE_FIELDS
            if field in data
        }

        for field in model.REQUIRED_FIELDS:
            if partial and field not in values:
                continue
            value = values.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
            if isinstance(value, str):
                values[field] = value.strip()

        for field, choices in getattr(model, 'CHOICES', {}).items():
            if field in values and values[field] is not None and values[field] not in choices:
                raise ValidationError(
                    f"Invalid {field}. Must be one of: {', '.join(choices)}"
                )

        return values

    @classmethod
    def _replace_items(cls, config: QCWeightageConfig, items) -> None:
        total, parsed = cls.validate_weightage_items(items)
        config.items = [QCWeightageItem(**item) for item in parsed]
        config.total_weight = total
        config.is_valid = True

    @classmethod
    def validate_weightage_items(cls, items) -> Tuple[float, List[Dict[str, Any]]]:
        """
        Validate QC weightage items.

        Args:
            items: List of dicts with weight_percentage and optional
                checklist_id, checklist_type, is_mandatory, applies_to_stage

        Returns:
            Tuple of (total weight, normalized item dicts with item_order)

        Raises:
            ValidationError: No items, bad weight, or weights not summing to 100
        """
        if not items or not isinstance(items, list):
            raise ValidationError('At least one checklist item is required')

        parsed = []
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                raise ValidationError(f'Checklist item {index} must be an object')
            try:
                weight = float(item.get('weight_percentage'))
            except (TypeError, ValueError):
                raise ValidationError(f'Checklist item {index} needs a numeric weight_percentage')
            if weight <= 0 or weight > QCWeightageConfig.REQUIRED_WEIGHT_TOTAL:
                raise ValidationError(
                    f'Checklist item {index} weight must be between 0 and '
                    f'{QCWeightageConfig.REQUIRED_WEIGHT_TOTAL}'
                )
            parsed.append({
                'checklist_id': item.get('checklist_id'),
                'checklist_type': item.get('checklist_type'),
                'weight_percentage': weight,
                'is_mandatory': bool(item.get('is_mandatory', False)),
                'applies_to_stage': item.get('applies_to_stage'),
                'item_order': index,
            })

        total = sum(item['weight_percentage'] for item in parsed)
        if abs(total - QCWeightageConfig.REQUIRED_WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
            raise ValidationError(
                f'Total weight must equal {QCWeightageConfig.REQUIRED_WEIGHT_TOTAL}% '
                f'(currently {total:g}%)'
            )
        return total, parsed

    @classmethod
    def _flush(cls, db_session, model) -> None:
        try:
            db_session.flush()
        except IntegrityError as e:
            db_session.rollback()
            logger.warning(f'Duplicate {model.__name__}: {e.orig}')
            raise ValidationError(f'{model.__name__} with these values already exists')
