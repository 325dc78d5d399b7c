"""Constants, token helpers and a recording gateway shared by the test modules."""

from datetime import datetime, timezone

from pinpoint.core.auth import create_access_token
from pinpoint.core.errors import AnnotationNotFound
from pinpoint.schemas.annotation import Annotation

ADMIN_ID = 1
OWNER_ID = 3
OTHER_ID = 4
BANNED_ID = 5
PUBLIC_IMAGE_ID = 7
PRIVATE_IMAGE_ID = 8


def make_token(user_id: int, **extra) -> str:
    return create_access_token(str(user_id), additional_claims=extra or None)


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


class FakeGateway:
    """Records calls and answers like the persistence side would."""

    def __init__(self, annotations=(), author_id: int = OWNER_ID):
        self.records = {annotation.id: annotation for annotation in annotations}
        self.author_id = author_id
        self.calls = []
        self.next_id = 101
        self.fail_with = None

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_annotations(self, image_id):
        self.calls.append(("fetch", image_id))
        self._maybe_fail()
        return list(self.records.values())

    async def create_annotation(self, data):
        self.calls.append(("create", data))
        self._maybe_fail()
        record = Annotation(
            id=self.next_id,
            type=data.type,
            x=data.x,
            y=data.y,
            end_x=data.end_x,
            end_y=data.end_y,
            label=data.label,
            description=data.description,
            image_id=data.image_id,
            user_id=self.author_id,
            is_hidden=False,
            created_at=datetime.now(timezone.utc),
        )
        self.next_id += 1
        self.records[record.id] = record
        return record

    async def update_annotation(self, annotation_id, fields):
        self.calls.append(("update", annotation_id, fields))
        self._maybe_fail()
        if annotation_id not in self.records:
            raise AnnotationNotFound()
        updated = self.records[annotation_id].model_copy(
            update={**fields.changes(), "updated_at": datetime.now(timezone.utc)}
        )
        self.records[annotation_id] = updated
        return updated

    async def delete_annotation(self, annotation_id):
        self.calls.append(("delete", annotation_id))
        self._maybe_fail()
        if self.records.pop(annotation_id, None) is None:
            raise AnnotationNotFound()


def make_annotation(annotation_id: int, user_id: int = OWNER_ID, **fields) -> Annotation:
    values = {
        "id": annotation_id,
        "type": "DOT",
        "x": 10.0,
        "y": 10.0,
        "label": f"Annotation {annotation_id}",
        "image_id": PUBLIC_IMAGE_ID,
        "user_id": user_id,
    }
    values.update(fields)
    return Annotation(**values)
