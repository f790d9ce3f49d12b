import logging

from django.db.models import Q
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import CaseNotFound, NotAuthorized
from users.gate import Capability, evaluate
from users.permissions import IsCitizen, IsLawyer, IsVerifiedLawyer

from . import ledger
from .models import Case, MatchEntry
from .serializers import (
    CaseDetailSerializer,
    CaseSerializer,
    CaseStatusSerializer,
    CreateOfferSerializer,
    CreateRequestSerializer,
    MatchEntrySerializer,
    RespondSerializer,
)
from .services import change_status, open_case

logger = logging.getLogger(__name__)


def _is_admin(user):
    return user.role == "admin" or user.is_superuser


def _get_case(pk):
    try:
        return Case.objects.select_related("created_by", "assigned_lawyer").get(pk=pk)
    except Case.DoesNotExist:
        raise CaseNotFound()


def can_view_case(user, case):
    if _is_admin(user) or case.is_participant(user):
        return True
    # open cases are visible to verified lawyers looking for work
    return case.is_open and evaluate(user, Capability.LAWYER_ROLE).allowed


# ============================================================
#   CASES
# ============================================================
class CaseListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/cases/?case_type=&status=&category=&available=1
    POST /api/cases/  (citizens only)
    """
    serializer_class = CaseSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticated(), IsCitizen()]
        return [IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        qs = Case.objects.select_related("created_by", "assigned_lawyer")

        if self.request.query_params.get("available") == "1":
            evaluate(user, Capability.LAWYER_ROLE).raise_for_denial()
            qs = qs.filter(status__in=Case.OPEN_STATUSES, assigned_lawyer__isnull=True)
        elif user.role == "lawyer":
            qs = qs.filter(assigned_lawyer=user)
        elif not _is_admin(user):
            qs = qs.filter(created_by=user)

        for param in ("case_type", "status", "category"):
            value = self.request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = open_case(request.user, **serializer.validated_data)
        return Response(
            {"success": True, "case": CaseSerializer(case).data},
            status=status.HTTP_201_CREATED,
        )


class CaseDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        case = _get_case(pk)
        if not can_view_case(request.user, case):
            raise NotAuthorized()
        return Response(CaseDetailSerializer(case).data)


class CaseStatusView(APIView):
    permission_classes = [IsAuthenticated, IsVerifiedLawyer]

    def patch(self, request, pk):
        serializer = CaseStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        case = change_status(
            pk,
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data.get("resolution_summary", ""),
        )
        return Response({"success": True, "case": CaseSerializer(case).data})


# ============================================================
#   REQUESTS / OFFERS
# ============================================================
class CaseRequestCreateView(APIView):
    """Citizen asks a specific lawyer to take their case."""
    permission_classes = [IsAuthenticated, IsCitizen]

    def post(self, request, pk):
        serializer = CreateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        entry = ledger.create_request(
            pk,
            request.user,
            data["lawyer_id"],
            message=data.get("message", ""),
            proposed_fee=data.get("proposed_fee"),
        )
        return Response(
            {"success": True, "message": "Request sent", "request": MatchEntrySerializer(entry).data},
            status=status.HTTP_201_CREATED,
        )


class CaseOfferCreateView(APIView):
    """Verified lawyer offers to take an open case."""
    permission_classes = [IsAuthenticated, IsLawyer]

    def post(self, request, pk):
        serializer = CreateOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        entry = ledger.create_offer(
            pk,
            request.user,
            message=data.get("message", ""),
            proposed_fee=data.get("proposed_fee"),
            estimated_duration=data.get("estimated_duration", ""),
        )
        return Response(
            {"success": True, "message": "Offer sent", "request": MatchEntrySerializer(entry).data},
            status=status.HTTP_201_CREATED,
        )


class RespondView(APIView):
    permission_classes = [IsAuthenticated, IsVerifiedLawyer]
    decision = None

    def post(self, request, request_id):
        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        outcome = ledger.respond(
            request_id,
            request.user,
            self.decision,
            serializer.validated_data.get("response", ""),
        )

        body = {
            "success": True,
            "message": f"{outcome.entry.get_kind_display()} {outcome.entry.status}",
            "request": MatchEntrySerializer(outcome.entry).data,
            "case": CaseSerializer(outcome.case).data,
        }
        if outcome.chat_id:
            body["chatId"] = outcome.chat_id
        return Response(body, status=status.HTTP_200_OK)


class AcceptEntryView(RespondView):
    decision = ledger.ACCEPT


class RejectEntryView(RespondView):
    decision = ledger.REJECT


class CaseEntriesView(generics.ListAPIView):
    """Entries on one case: everything for the owner and admins, own entries for other lawyers."""
    serializer_class = MatchEntrySerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        user = self.request.user
        case = _get_case(self.kwargs["pk"])
        qs = MatchEntry.objects.filter(case=case).select_related("case", "lawyer")

        if _is_admin(user) or case.created_by_id == user.pk:
            return qs
        if user.role == "lawyer":
            return qs.filter(lawyer=user)
        raise NotAuthorized()


class InboxView(generics.ListAPIView):
    """Pending entries waiting for the caller's answer."""
    serializer_class = MatchEntrySerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        return MatchEntry.objects.filter(
            Q(kind=MatchEntry.KIND_OFFER, case__created_by=user) | Q(kind=MatchEntry.KIND_REQUEST, lawyer=user),
            status=MatchEntry.STATUS_PENDING,
        ).select_related("case", "lawyer").order_by("-created_at")


class OutboxView(generics.ListAPIView):
    """Entries the caller sent, in any status."""
    serializer_class = MatchEntrySerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        qs = MatchEntry.objects.filter(
            Q(kind=MatchEntry.KIND_REQUEST, case__created_by=user) | Q(kind=MatchEntry.KIND_OFFER, lawyer=user)
        ).select_related("case", "lawyer").order_by("-created_at")

        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs
