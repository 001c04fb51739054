from fastapi import HTTPException, status

from app.models.exam import Exam
from app.schemas.user import UserContext
from app.core.constants import RoleEnum


class PermissionHelper:
    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return context.role == RoleEnum.ADMIN

    @staticmethod
    def is_teacher(context: UserContext) -> bool:
        return context.role == RoleEnum.TEACHER

    @staticmethod
    def is_student(context: UserContext) -> bool:
        return context.role == RoleEnum.STUDENT

    @staticmethod
    def is_exam_owner(context: UserContext, exam: Exam) -> bool:
        return exam.teacher_id == context.user_id

    @staticmethod
    def require_teacher(context: UserContext):
        if not (PermissionHelper.is_teacher(context) or PermissionHelper.is_admin(context)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only teachers can manage exams."
            )

    @staticmethod
    def require_exam_management_permission(context: UserContext, exam: Exam):
        if PermissionHelper.is_admin(context):
            return
        if not (PermissionHelper.is_teacher(context) and PermissionHelper.is_exam_owner(context, exam)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only manage your own exams."
            )

    @staticmethod
    def require_student(context: UserContext):
        if not PermissionHelper.is_student(context):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only students can take exams."
            )
