from django.db.models import Q
from rest_framework import generics, permissions, status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Notification, ActivityLog
from .serializers import ACTIVITY_TYPES, NotificationSerializer, ActivityLogSerializer


class NotificationListView(generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        qs = Notification.objects.filter(user=self.request.user)
        if self.request.query_params.get("unread") in ("1", "true"):
            qs = qs.filter(is_read=False)
        return qs.order_by('-created_at')

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        response.data["unread_count"] = Notification.objects.filter(user=request.user, is_read=False).count()
        return response


class NotificationMarkReadView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, pk):
        updated = Notification.objects.filter(pk=pk, user=request.user).update(is_read=True)
        if not updated:
            raise NotFound("Notification not found.")
        return Response({"success": True, "message": "Notification marked as read."}, status=status.HTTP_200_OK)


class NotificationMarkAllReadView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request):
        count = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
        return Response({"success": True, "updated": count}, status=status.HTTP_200_OK)


class NotificationDeleteView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, pk):
        deleted, _ = Notification.objects.filter(pk=pk, user=request.user).delete()
        if not deleted:
            raise NotFound("Notification not found.")
        return Response({"success": True, "message": "Notification deleted."}, status=status.HTTP_200_OK)


class ActivityLogListView(generics.ListAPIView):
    """
    GET /api/notifications/activity/?type=match
    Admins see every entry, everyone else only their own.
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ActivityLogSerializer

    def get_queryset(self):
        user = self.request.user
        qs = ActivityLog.objects.all() if user.role == "admin" else ActivityLog.objects.filter(user=user)

        filter_type = self.request.query_params.get("type")
        if filter_type and filter_type != "all":
            keywords = [keyword for keyword, kind in ACTIVITY_TYPES if kind == filter_type.lower()]
            if not keywords:
                return qs.none()

            condition = Q()
            for keyword in keywords:
                condition |= Q(action__icontains=keyword)
            qs = qs.filter(condition)

        return qs.order_by("-timestamp")
