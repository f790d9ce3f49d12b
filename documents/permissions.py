def is_admin(user):
    return getattr(user, "role", None) == "admin" or user.is_superuser


def user_has_access_to_document(user, document):
    """
    Uploader and admins always; for case documents also the case's
    citizen and its assigned lawyer.
    """
    if document.uploaded_by_id == user.id or is_admin(user):
        return True
    if document.case_id is not None:
        return document.case.is_participant(user)
    return False
