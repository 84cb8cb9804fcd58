"""
Operation table: which upstream serves each gateway operation and how.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.errors import UpstreamError, UpstreamErrorKind
from service_gateway.app.adapters import UpstreamRequest
from service_gateway.app.domain import fallback
from service_gateway.app.domain.envelopes import UserContext
from service_gateway.app.registry import COURSE_SERVICE, DSA_SERVICE, PROFILE_SERVICE, RESUME_ANALYZER

CHAT = "chat"
GENERATE_COURSE = "generateCourse"
ANALYZE_RESUME = "analyzeResume"
GET_PROFILE = "getProfile"


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ChatRequest(_Payload):
    message: str = Field(..., min_length=1)
    context: str = "dsa_learning"


class CoursePurpose(str, Enum):
    EXAM_PREPARATION = "exam_preparation"
    JOB_INTERVIEW = "job_interview"
    SKILL_DEVELOPMENT = "skill_development"
    PROJECT_WORK = "project_work"


class CourseDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CourseRequest(_Payload):
    course_name: str = Field(..., min_length=1)
    purpose: CoursePurpose
    difficulty: CourseDifficulty
    custom_prompt: Optional[str] = None
    include_exam_prep: bool = True


class ResumeAnalysisRequest(_Payload):
    resume_text: str = Field(..., min_length=1)
    target_role: Optional[str] = None


class ProfileRequest(_Payload):
    pass


def _chat_request(payload: ChatRequest, user: UserContext) -> UpstreamRequest:
    return UpstreamRequest(
        method="POST",
        path="/chat",
        json=payload.model_dump(mode="json", by_alias=True),
        request_id=user.request_id,
        user_id=user.user_id,
    )


def _course_request(payload: CourseRequest, user: UserContext) -> UpstreamRequest:
    body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    body["userId"] = user.user_id
    return UpstreamRequest(
        method="POST",
        path="/courses",
        json=body,
        request_id=user.request_id,
        user_id=user.user_id,
    )


def _resume_request(payload: ResumeAnalysisRequest, user: UserContext) -> UpstreamRequest:
    body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    body["userId"] = user.user_id
    return UpstreamRequest(
        method="POST",
        path="/analyze",
        json=body,
        request_id=user.request_id,
        user_id=user.user_id,
    )


def _profile_request(payload: ProfileRequest, user: UserContext) -> UpstreamRequest:
    return UpstreamRequest(
        method="GET",
        path=f"/profiles/{user.user_id}",
        idempotent=True,
        request_id=user.request_id,
        user_id=user.user_id,
    )


def _chat_response(body: Dict[str, Any]) -> Dict[str, Any]:
    response = body.get("response")
    if not isinstance(response, str) or not response.strip():
        response = fallback.UNCLEAR_REPLY
    return {**body, "response": response}


def _course_response(body: Dict[str, Any]) -> Dict[str, Any]:
    if not body.get("courseId"):
        raise UpstreamError(COURSE_SERVICE, UpstreamErrorKind.MALFORMED_BODY, "response is missing courseId")
    return body


def _passthrough(body: Dict[str, Any]) -> Dict[str, Any]:
    return body


@dataclass(frozen=True)
class OperationSpec:
    """How one gateway operation maps onto its upstream."""
    name: str
    service: str
    payload_model: Type[_Payload]
    build_request: Callable[[Any, UserContext], UpstreamRequest]
    normalize: Callable[[Dict[str, Any]], Dict[str, Any]]
    fallback: Callable[[Dict[str, Any]], Dict[str, Any]]
    requires_user: bool = False


OPERATIONS: Dict[str, OperationSpec] = {
    CHAT: OperationSpec(
        name=CHAT,
        service=DSA_SERVICE,
        payload_model=ChatRequest,
        build_request=_chat_request,
        normalize=_chat_response,
        fallback=fallback.chat_fallback,
    ),
    GENERATE_COURSE: OperationSpec(
        name=GENERATE_COURSE,
        service=COURSE_SERVICE,
        payload_model=CourseRequest,
        build_request=_course_request,
        normalize=_course_response,
        fallback=fallback.course_fallback,
        requires_user=True,
    ),
    ANALYZE_RESUME: OperationSpec(
        name=ANALYZE_RESUME,
        service=RESUME_ANALYZER,
        payload_model=ResumeAnalysisRequest,
        build_request=_resume_request,
        normalize=_passthrough,
        fallback=fallback.resume_fallback,
        requires_user=True,
    ),
    GET_PROFILE: OperationSpec(
        name=GET_PROFILE,
        service=PROFILE_SERVICE,
        payload_model=ProfileRequest,
        build_request=_profile_request,
        normalize=_passthrough,
        fallback=fallback.profile_fallback,
        requires_user=True,
    ),
}
