from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from users.permissions import IsCitizen, IsLawyer

from . import services
from .serializers import (
    ConsultationCancelSerializer,
    ConsultationRequestSerializer,
    ConsultationSerializer,
    ConsultationStatusSerializer,
)


class ConsultationRequestView(APIView):
    """POST /api/consultations/request/  (citizens only)"""
    permission_classes = [IsAuthenticated, IsCitizen]

    def post(self, request):
        serializer = ConsultationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        consultation = services.request_consultation(
            request.user,
            data["lawyer_id"],
            data["scheduled_at"],
            consultation_type=data["consultation_type"],
            duration_minutes=data["duration_minutes"],
            description=data.get("description", ""),
            case_id=data.get("case_id"),
        )
        return Response(
            {
                "success": True,
                "message": "Consultation requested",
                "consultation": ConsultationSerializer(consultation).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ConsultationListView(generics.ListAPIView):
    """GET /api/consultations/?status=confirmed"""
    serializer_class = ConsultationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return services.consultations_for(self.request.user, self.request.query_params.get("status"))


class ConsultationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        consultation = services.get_consultation(pk, request.user)
        return Response(ConsultationSerializer(consultation).data)


class ConsultationStatusView(APIView):
    permission_classes = [IsAuthenticated, IsLawyer]

    def patch(self, request, pk):
        serializer = ConsultationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        consultation = services.update_status(
            pk,
            request.user,
            data["status"],
            meeting_link=data.get("meeting_link", ""),
            notes=data.get("notes", ""),
        )
        return Response({"success": True, "consultation": ConsultationSerializer(consultation).data})


class ConsultationCancelView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk):
        serializer = ConsultationCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        consultation = services.cancel(pk, request.user, serializer.validated_data.get("reason", ""))
        return Response({"success": True, "consultation": ConsultationSerializer(consultation).data})
