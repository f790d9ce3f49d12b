import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ChainVerdictError(APIException):
    """Base for every domain error the API reports with a stable code."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "ERROR"
    default_detail = "The request could not be completed."

    def __init__(self, detail=None, data=None):
        super().__init__(detail=detail, code=self.default_code)
        self.data = data or {}


# Role gate

class Unauthenticated(ChainVerdictError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHENTICATED"
    default_detail = "Authentication required."


class RoleRequired(ChainVerdictError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "ROLE_REQUIRED"
    default_detail = "This feature is not available to your role."


class LawyerNotVerified(ChainVerdictError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "LAWYER_NOT_VERIFIED"
    default_detail = (
        "Your lawyer account is pending verification. "
        "Please wait for admin approval before accessing this feature."
    )


class AccountDeactivated(ChainVerdictError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "ACCOUNT_DEACTIVATED"
    default_detail = "Your account has been deactivated. Please contact support."


# Request/offer ledger

class CaseNotFound(ChainVerdictError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "CASE_NOT_FOUND"
    default_detail = "Case not found."


class CaseNotOpen(ChainVerdictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "CASE_NOT_OPEN"
    default_detail = "Case is not available for lawyer assignment."


class DuplicateRequest(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "DUPLICATE_REQUEST"
    default_detail = "An active request for this lawyer already exists on this case."


class RequestNotFound(ChainVerdictError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "REQUEST_NOT_FOUND"
    default_detail = "Request not found."


class NotAuthorized(ChainVerdictError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "NOT_AUTHORIZED"
    default_detail = "You are not allowed to perform this action."


class AlreadyResponded(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "ALREADY_RESPONDED"
    default_detail = "This request has already been responded to."


class LawyerNotFound(ChainVerdictError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "LAWYER_NOT_FOUND"
    default_detail = "Lawyer not found or not verified."


# Assignment resolver / chat provisioning

class AlreadyAssigned(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "ALREADY_ASSIGNED"
    default_detail = "This case has already been assigned to a lawyer."


class ChatAlreadyProvisioned(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CHAT_ALREADY_PROVISIONED"
    default_detail = "A different chat channel is already recorded for this case."


# Calls

class CallNotFound(ChainVerdictError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "CALL_NOT_FOUND"
    default_detail = "Call not found."


class CallBusy(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CALL_BUSY"
    default_detail = "One or both users are already in an active call."


class InvalidCallState(ChainVerdictError):
    default_code = "INVALID_CALL_STATE"
    default_detail = "The call cannot do that in its current state."


# Consultations

class ConsultationNotFound(ChainVerdictError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "CONSULTATION_NOT_FOUND"
    default_detail = "Consultation not found."


class ScheduleConflict(ChainVerdictError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "SCHEDULE_CONFLICT"
    default_detail = "The lawyer has another consultation scheduled at this time."


class CancellationWindowClosed(ChainVerdictError):
    default_code = "CANCELLATION_WINDOW_CLOSED"
    default_detail = "Consultations can only be cancelled up to two hours before they start."


class InternalError(ChainVerdictError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL"
    default_detail = "Internal server error."


def _error_code(exc):
    if isinstance(exc, ChainVerdictError):
        return exc.default_code
    if isinstance(exc, NotAuthenticated):
        return Unauthenticated.default_code
    if isinstance(exc, Http404):
        return "NOT_FOUND"
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            return codes.upper()
        return "ERROR"
    return "PERMISSION_DENIED"


def api_exception_handler(exc, context):
    """
    Render every API error as {"success": false, "code", "message", ...}.

    Anything DRF does not know how to render is logged and reported as a
    bare 500 so tracebacks never reach the client.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else "view", exc_info=exc
        )
        return Response(
            {"success": False, "code": InternalError.default_code, "message": InternalError.default_detail},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        response.data = {
            "success": False,
            "code": "VALIDATION_FAILED",
            "message": "Validation failed",
            "errors": response.data,
        }
        return response

    data = response.data
    message = data.get("detail") if isinstance(data, dict) else data
    body = {"success": False, "code": _error_code(exc), "message": str(message)}
    if getattr(exc, "data", None):
        body["data"] = exc.data
    response.data = body

    if response.status_code >= 500:
        logger.error("%s: %s", body["code"], body["message"])
    return response
