from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.middleware import get_client_ip

from . import services
from .serializers import CallSerializer, EndCallSerializer, InitiateCallSerializer


class CallInitiateView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "calls"

    def post(self, request):
        serializer = InitiateCallSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        call = services.initiate(
            request.user,
            data["target_user_id"],
            data["call_type"],
            data["chat_id"],
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            ip_address=get_client_ip(request),
        )
        return Response(
            {"success": True, "message": "Call initiated", "call": CallSerializer(call).data},
            status=status.HTTP_201_CREATED,
        )


class CallActionView(APIView):
    """PATCH /api/calls/<call_id>/answer|end|reject/"""
    permission_classes = [IsAuthenticated]
    operation = None

    def patch(self, request, call_id):
        if self.operation == "answer":
            call = services.answer(call_id, request.user)
        else:
            serializer = EndCallSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            default = "completed" if self.operation == "end" else "rejected"
            handler = services.end if self.operation == "end" else services.reject
            call = handler(call_id, request.user, serializer.validated_data.get("reason", default))

        return Response(
            {"success": True, "message": f"Call {call.status}", "call": CallSerializer(call).data},
            status=status.HTTP_200_OK,
        )


class CallAnswerView(CallActionView):
    operation = "answer"


class CallEndView(CallActionView):
    operation = "end"


class CallRejectView(CallActionView):
    operation = "reject"


class CallHistoryView(generics.ListAPIView):
    """GET /api/calls/history/?call_type=video&status=ended"""
    serializer_class = CallSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        params = self.request.query_params
        return services.history(self.request.user, params.get("call_type"), params.get("status"))


class ActiveCallsView(generics.ListAPIView):
    serializer_class = CallSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.active_calls(self.request.user)


class CallStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        stats = services.stats(request.user, request.query_params.get("timeframe", "month"))
        return Response({"success": True, "stats": stats})


class CallDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, call_id):
        call = services.get_call(call_id, request.user)
        return Response(CallSerializer(call).data)
