import pytest
from pydantic import ValidationError

from tracker.schemas import (
    MAX_COUNT,
    CategoryCreateRequest,
    CategoryUpdateRequest,
    ProgressRequest,
    SignupRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
)


def test_task_days_are_stored_canonical():
    payload = TaskCreateRequest(task_name=" read ", target_count=2, days_of_week=["Friday", "mon", "Mon"])
    assert payload.task_name == "read"
    assert payload.days_of_week == ["mon", "fri"]


def test_task_rejects_unknown_day():
    with pytest.raises(ValidationError, match="funday"):
        TaskCreateRequest(task_name="read", target_count=2, days_of_week=["Mon", "funday"])


@pytest.mark.parametrize("days", [[], ["Mon", 3]])
def test_task_rejects_bad_day_list(days):
    with pytest.raises(ValidationError):
        TaskCreateRequest(task_name="read", target_count=2, days_of_week=days)


@pytest.mark.parametrize("target", [0, -1, True, 1.5, 10**20])
def test_task_rejects_bad_target(target):
    with pytest.raises(ValidationError):
        TaskCreateRequest(task_name="read", target_count=target, days_of_week=["Mon"])


def test_task_rejects_blank_name():
    with pytest.raises(ValidationError, match="task_name is required"):
        TaskCreateRequest(task_name="  ", target_count=1, days_of_week=["Mon"])


def test_task_update_only_reports_sent_fields():
    payload = TaskUpdateRequest.model_validate({"target_count": 5, "category_id": None})
    assert payload.changes() == {"target_count": 5, "category_id": None}


def test_task_update_rejects_explicit_nulls():
    with pytest.raises(ValidationError):
        TaskUpdateRequest.model_validate({"days_of_week": None})
    with pytest.raises(ValidationError):
        TaskUpdateRequest.model_validate({"task_name": None})


@pytest.mark.parametrize("value", ["🔥", " 📚 "])
def test_category_accepts_single_emoji(value):
    assert CategoryCreateRequest(category_name="Health", category_emoji=value).category_emoji == value.strip()


@pytest.mark.parametrize("value", ["🔥🔥", "ab", "", "x🔥"])
def test_category_rejects_non_emoji(value):
    with pytest.raises(ValidationError, match="single emoji"):
        CategoryCreateRequest(category_name="Health", category_emoji=value)


def test_category_update_null_emoji_clears():
    payload = CategoryUpdateRequest.model_validate({"category_emoji": None})
    assert payload.changes() == {"category_emoji": None}


def test_signup_normalizes_identity():
    payload = SignupRequest.model_validate(
        {"email": " Alice@Example.COM ", "username": "Alice", "fullName": " Alice A ", "password": "secret1"}
    )
    assert payload.email == "alice@example.com"
    assert payload.username == "alice"
    assert payload.full_name == "Alice A"


@pytest.mark.parametrize(
    "override,message",
    [
        ({"password": None}, "Missing required fields"),
        ({"email": "not-an-email"}, "Email not valid"),
        ({"username": "a!"}, "Username not valid"),
        ({"password": "short"}, "Password not valid"),
        ({"password": "has space"}, "Password not valid"),
    ],
)
def test_signup_rejections(override, message):
    body = {"email": "a@b.co", "username": "alice", "fullName": "Alice", "password": "secret1"}
    body.update(override)
    with pytest.raises(ValidationError, match=message):
        SignupRequest.model_validate(body)


def test_progress_request_rejects_bool_count():
    with pytest.raises(ValidationError):
        ProgressRequest.model_validate(
            {"task_id": "6f1c2d9e-2f7a-4a43-9a1e-1f8f4b1b2c3d", "completed_count": True, "date": "2024-06-05"}
        )


def test_counts_are_bounded_to_integer_column():
    assert TaskCreateRequest(task_name="read", target_count=MAX_COUNT, days_of_week=["Mon"]).target_count == MAX_COUNT
    with pytest.raises(ValidationError):
        TaskUpdateRequest.model_validate({"target_count": MAX_COUNT + 1})
    with pytest.raises(ValidationError):
        ProgressRequest.model_validate(
            {"task_id": "6f1c2d9e-2f7a-4a43-9a1e-1f8f4b1b2c3d", "completed_count": 10**20, "date": "2024-06-05"}
        )
