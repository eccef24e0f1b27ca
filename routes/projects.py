"""Project blueprint."""
from __future__ import annotations

from flask import Blueprint

from forms import ProjectForm
from routes import (
    bind_form,
    commit_session,
    current_user_id,
    ensure_valid,
    form_data,
    json_success,
    request_payload,
    submitted_changes,
)
from services import project_service, task_service

projects_bp = Blueprint("projects", __name__, url_prefix="/projects")


@projects_bp.route("", methods=["GET"])
def list_projects():
    projects = project_service.list_projects(current_user_id())
    return json_success(projects=[project_service.serialize_project(project) for project in projects])


@projects_bp.route("", methods=["POST"])
def create_project():
    payload = request_payload()
    form = bind_form(ProjectForm, payload)
    ensure_valid(form)
    project = project_service.create_project(current_user_id(), form_data(form))
    commit_session("create project")
    return json_success(
        201,
        message="Project created successfully",
        project=project_service.serialize_project(project),
    )


@projects_bp.route("/reorder", methods=["POST"])
def reorder_projects():
    payload = request_payload()
    count = project_service.reorder_projects(current_user_id(), payload.get("updates"))
    commit_session("reorder projects")
    return json_success(message=f"Successfully reordered {count} project(s)")


@projects_bp.route("/<int:project_id>", methods=["GET"])
def show_project(project_id: int):
    return json_success(**project_service.get_project_detail(current_user_id(), project_id))


@projects_bp.route("/<int:project_id>", methods=["PATCH", "PUT"])
def update_project(project_id: int):
    payload = request_payload()
    form = bind_form(ProjectForm, payload)
    ensure_valid(form, payload)
    project = project_service.update_project(
        current_user_id(), project_id, submitted_changes(form, payload)
    )
    commit_session("update project")
    return json_success(
        message="Project updated successfully",
        project=project_service.serialize_project(project),
    )


@projects_bp.route("/<int:project_id>", methods=["DELETE"])
def delete_project(project_id: int):
    name = project_service.delete_project(current_user_id(), project_id)
    commit_session("delete project")
    return json_success(message=f'Project "{name}" deleted successfully')


@projects_bp.route("/<int:project_id>/tasks", methods=["GET"])
def project_tasks(project_id: int):
    tasks = task_service.list_project_tasks(current_user_id(), project_id)
    return json_success(tasks=[task_service.serialize_task(task) for task in tasks])


@projects_bp.route("/<int:project_id>/task-stats", methods=["GET"])
def project_task_stats(project_id: int):
    return json_success(stats=task_service.project_task_stats(current_user_id(), project_id))
