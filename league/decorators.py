import json
import logging
from decimal import InvalidOperation
from functools import wraps

from django.http import Http404, JsonResponse
from django.urls import reverse

logger = logging.getLogger(__name__)


def api_login_required(view_func):
    """
    Decorator for API views that require authentication.
    Returns JSON response with 401 status for unauthenticated requests.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({
                'error': 'Authentication required',
                'login_url': reverse('league:login')
            }, status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def json_api(*methods):
    """
    Decorator for JSON API views.

    Rejects other HTTP methods with 405 and maps errors raised by services to
    JSON responses: bad input is a 400, a missing object a 404, and anything
    else is logged and reported as a 500.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return JsonResponse({"error": "Method not allowed"}, status=405)
            try:
                return view_func(request, *args, **kwargs)
            except json.JSONDecodeError:
                return JsonResponse({"status": "error", "message": "Invalid JSON data"}, status=400)
            except KeyError as e:
                return JsonResponse(
                    {"status": "error", "message": f"Missing required field: {e.args[0]}"}, status=400
                )
            except InvalidOperation:
                return JsonResponse({"status": "error", "message": "Invalid amount"}, status=400)
            except ValueError as e:
                return JsonResponse({"status": "error", "message": str(e)}, status=400)
            except Http404 as e:
                return JsonResponse({"status": "error", "message": str(e) or "Not found"}, status=404)
            except Exception as e:
                logger.exception(f"Error in {view_func.__name__}")
                return JsonResponse({"status": "error", "message": str(e)}, status=500)
        return wrapper
    return decorator
