"""Comment Filter - Hide internal comments from requesters"""
from typing import Iterable, List

from ..domain.models import Comment
from ..domain.enums import Role


def filter_comments(comments: Iterable[Comment], viewer_role: Role) -> List[Comment]:
    """
    Comments visible to a viewer of the given role

    Employees never see internal comments; every other role sees all of
    them. Order and content are left as they came in.
    """
    if viewer_role == Role.EMPLOYEE:
        return [comment for comment in comments if not comment.is_internal]
    return list(comments)
