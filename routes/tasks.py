"""Task blueprint."""
from __future__ import annotations

from flask import Blueprint, request

from forms import TaskForm, TaskStatusForm
from routes import (
    bind_form,
    commit_session,
    current_user_id,
    ensure_valid,
    form_data,
    json_success,
    parse_id_list,
    parse_string_list,
    request_payload,
    submitted_changes,
)
from services import task_service

tasks_bp = Blueprint("tasks", __name__, url_prefix="/tasks")

DEFAULT_LIST_LIMIT = 50


def _limit_arg() -> int:
    return request.args.get("limit", DEFAULT_LIST_LIMIT, type=int) or DEFAULT_LIST_LIMIT


@tasks_bp.route("", methods=["POST"])
def create_task():
    payload = request_payload()
    form = bind_form(TaskForm, payload)
    ensure_valid(form)
    task = task_service.create_task(
        current_user_id(),
        form_data(form),
        tag_ids=parse_id_list(payload.get("tag_ids"), "tag_ids"),
        new_tags=parse_string_list(payload.get("new_tags"), "new_tags"),
    )
    commit_session("create task")
    return json_success(201, message="Task created successfully", task=task_service.serialize_task(task))


@tasks_bp.route("/<int:task_id>", methods=["GET"])
def show_task(task_id: int):
    task = task_service.get_task(current_user_id(), task_id)
    return json_success(task=task_service.serialize_task(task))


@tasks_bp.route("/<int:task_id>", methods=["PATCH", "PUT"])
def update_task(task_id: int):
    payload = request_payload()
    form = bind_form(TaskForm, payload)
    # Tasks do not move between projects
    payload.pop("project_id", None)
    ensure_valid(form, payload)
    tag_ids = None
    if "tag_ids" in payload:
        tag_ids = parse_id_list(payload["tag_ids"], "tag_ids")
    task = task_service.update_task(
        current_user_id(), task_id, submitted_changes(form, payload), tag_ids=tag_ids
    )
    commit_session("update task")
    return json_success(message="Task updated successfully", task=task_service.serialize_task(task))


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
def delete_task(task_id: int):
    removed = task_service.delete_task(current_user_id(), task_id)
    commit_session("delete task")
    message = "Task deleted successfully"
    if removed:
        message = f"Task and {removed} subtask(s) deleted successfully"
    return json_success(message=message, subtasks_deleted=removed)


@tasks_bp.route("/<int:task_id>/status", methods=["PATCH"])
def update_task_status(task_id: int):
    payload = request_payload()
    form = bind_form(TaskStatusForm, payload)
    ensure_valid(form)
    result = task_service.set_task_status(current_user_id(), task_id, form.status.data)
    commit_session("update task status")
    return json_success(message="Task status updated successfully", task=result)


@tasks_bp.route("/<int:task_id>/toggle-completion", methods=["PATCH"])
def toggle_task_completion(task_id: int):
    result = task_service.toggle_task_completion(current_user_id(), task_id)
    commit_session("toggle task completion")
    return json_success(message="Task updated successfully", task=result)


@tasks_bp.route("/bulk-status", methods=["POST"])
def bulk_update_status():
    payload = request_payload()
    form = bind_form(TaskStatusForm, payload)
    ensure_valid(form)
    task_ids = parse_id_list(payload.get("task_ids"), "task_ids")
    updated = task_service.bulk_update_status(current_user_id(), task_ids, form.status.data)
    commit_session("bulk update task status")
    return json_success(
        message=f"Successfully updated {len(updated)} task(s)",
        updated_count=len(updated),
        tasks=updated,
    )


@tasks_bp.route("/reorder", methods=["POST"])
def reorder_tasks():
    payload = request_payload()
    details = task_service.reorder_tasks(current_user_id(), payload.get("updates"))
    commit_session("reorder tasks")
    return json_success(
        message=f"Successfully reordered {len(details)} task(s)",
        details=details,
    )


@tasks_bp.route("/overdue", methods=["GET"])
def overdue_tasks():
    tasks = task_service.list_overdue_tasks(current_user_id(), limit=_limit_arg())
    return json_success(tasks=[task_service.serialize_task_summary(task) for task in tasks])


@tasks_bp.route("/due-soon", methods=["GET"])
def tasks_due_soon():
    tasks = task_service.list_tasks_due_soon(current_user_id(), limit=_limit_arg())
    return json_success(tasks=[task_service.serialize_task_summary(task) for task in tasks])
