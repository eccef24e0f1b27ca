from models.calendar_event import CalendarEvent
from models.note import Note, NoteImage
from models.project import Project
from models.tag import Tag, task_tags
from models.task import Task


def _ondelete(column):
    (foreign_key,) = column.foreign_keys
    return foreign_key.ondelete


def test_owned_rows_go_with_their_owner():
    for model in (Project, Task, Tag, Note, CalendarEvent):
        assert _ondelete(model.__table__.c.owner_id) == "CASCADE", model.__name__


def test_task_foreign_keys():
    columns = Task.__table__.c

    assert _ondelete(columns.project_id) == "CASCADE"
    assert _ondelete(columns.parent_task_id) == "CASCADE"
    assert _ondelete(columns.assigned_to) == "SET NULL"


def test_tag_links_and_images_follow_their_parents():
    assert _ondelete(task_tags.c.task_id) == "CASCADE"
    assert _ondelete(task_tags.c.tag_id) == "CASCADE"
    assert _ondelete(NoteImage.__table__.c.note_id) == "CASCADE"
