import logging

from django.db.models import Q
from django.http import FileResponse
from rest_framework import generics, status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotAuthorized
from notifications.utils import log_activity

from .models import Document
from .permissions import is_admin, user_has_access_to_document
from .serializers import ALLOWED_EXTENSIONS, DocumentSerializer, DocumentUploadSerializer

logger = logging.getLogger(__name__)


def _get_document(request, pk):
    try:
        document = Document.objects.select_related("case", "uploaded_by").get(pk=pk)
    except Document.DoesNotExist:
        raise NotFound("Document not found")

    if not user_has_access_to_document(request.user, document):
        raise NotAuthorized("You do not have access to this document.")
    return document


# ============================================================
#   DOCUMENT LIST
# ============================================================
class DocumentListView(generics.ListAPIView):
    """GET /api/documents/?case=<id>&document_type=evidence"""
    permission_classes = [IsAuthenticated]
    serializer_class = DocumentSerializer

    def get_queryset(self):
        user = self.request.user
        qs = Document.objects.select_related("uploaded_by")

        if not is_admin(user):
            qs = qs.filter(
                Q(uploaded_by=user) | Q(case__created_by=user) | Q(case__assigned_lawyer=user)
            )

        case_id = self.request.query_params.get("case")
        if case_id:
            qs = qs.filter(case_id=case_id)
        document_type = self.request.query_params.get("document_type")
        if document_type:
            qs = qs.filter(document_type=document_type)
        return qs.distinct()


# ============================================================
#   UPLOAD DOCUMENT
# ============================================================
class DocumentUploadView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "uploads"

    def post(self, request):
        serializer = DocumentUploadSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        upload = data["file"]
        extension = upload.name.rsplit(".", 1)[-1].lower()
        document = Document.objects.create(
            uploaded_by=request.user,
            case=data.get("case"),
            title=data.get("title") or upload.name,
            file=upload,
            mime_type=ALLOWED_EXTENSIONS[f".{extension}"],
            size=upload.size,
            document_type=data["document_type"],
            description=data.get("description", ""),
        )

        log_activity(request.user, "Uploaded document", {"document_id": document.id, "case_id": document.case_id})
        logger.info("User %s uploaded document %s (%s bytes)", request.user.pk, document.pk, document.size)

        return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)


# ============================================================
#   DOCUMENT DETAIL / DOWNLOAD / DELETE
# ============================================================
class DocumentDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        return Response(DocumentSerializer(_get_document(request, pk)).data)


class DocumentDownloadView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        document = _get_document(request, pk)
        return FileResponse(
            document.file.open("rb"),
            as_attachment=True,
            filename=document.filename,
            content_type=document.mime_type or "application/octet-stream",
        )


class DocumentDeleteView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        document = _get_document(request, pk)

        if document.uploaded_by_id != request.user.pk and not is_admin(request.user):
            raise NotAuthorized("Only the uploader can delete this document.")

        document.file.delete(save=False)
        document.delete()
        log_activity(request.user, "Deleted document", {"document_id": pk})

        return Response(status=status.HTTP_204_NO_CONTENT)
