"""
Health check API views
"""
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from django.db import connection, DatabaseError
from django.utils import timezone

from .models_popover import Popover

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    Simple health check endpoint for deployment monitoring
    """
    published = None
    try:
        # Check database connection
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        published = Popover.objects.filter(post_status='publish').count()
        db_status = "ok"
    except DatabaseError as e:
        logger.error(f"Health check database error: {str(e)}")
        db_status = f"error: {str(e)}"

    health_data = {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "database": db_status,
        "published_popovers": published,
    }

    # Return 200 if healthy, 503 if unhealthy
    response_status = status.HTTP_200_OK if db_status == "ok" else status.HTTP_503_SERVICE_UNAVAILABLE

    return Response(health_data, status=response_status)
