"""Utility functions for audit logging and document numbering"""
import logging

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, receive, stock_add, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, PO number)
        object_reference: Reference identifier (e.g., PO number, RV number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def generate_document_number(model, field, prefix, on_date=None):
    """
    Generate the next sequential document number for a day.

    Numbers look like ``PO-20250114-0001``. The sequence restarts every day and
    is one more than the highest number already stored with the same day prefix.
    The field carries a unique constraint, so two concurrent writers cannot both
    persist the same number.
    """
    on_date = on_date or timezone.localdate()
    day_prefix = f"{prefix}-{on_date.strftime('%Y%m%d')}-"

    last_number = (
        model.objects.filter(**{f'{field}__startswith': day_prefix})
        .order_by(f'-{field}')
        .values_list(field, flat=True)
        .first()
    )

    sequence = 1
    if last_number:
        try:
            sequence = int(last_number.rsplit('-', 1)[1]) + 1
        except (IndexError, ValueError):
            logger.warning(f"Unparseable document number {last_number} for prefix {day_prefix}")
            sequence = model.objects.filter(**{f'{field}__startswith': day_prefix}).count() + 1

    return f"{day_prefix}{sequence:04d}"


def _positive_int(value, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def paginated_response(request, queryset, serializer_class, default_limit=15, context=None):
    """Paginate a queryset with ``page``/``limit`` query params and serialize the page"""
    from django.core.paginator import Paginator
    from rest_framework.response import Response

    page = _positive_int(request.query_params.get('page'), 1)
    limit = min(_positive_int(request.query_params.get('limit'), default_limit), 200)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
