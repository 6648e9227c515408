"""Aggregation pipelines that hydrate referenced documents.

A relation set names the references to join for one kind of document. Stored
references may be ObjectIds or their hex strings, so each local field is
converted before the ``$lookup``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Relation:
    local_field: str
    collection: str
    as_field: str
    foreign_field: str = "_id"
    many: bool = False

    @property
    def reverse(self) -> bool:
        """True when the other collection holds the reference to us."""
        return self.local_field == "_id"


class RelationSet(str, Enum):
    CLASS_DETAILS = "class_details"
    CLASS_SUBJECT_DETAILS = "class_subject_details"
    TEACHER_DETAILS = "teacher_details"
    STUDENT_DETAILS = "student_details"
    TIMETABLE_DETAILS = "timetable_details"
    JOIN_REQUEST_DETAILS = "join_request_details"


RELATIONS: Dict[RelationSet, Sequence[Relation]] = {
    RelationSet.CLASS_DETAILS: (
        Relation("parent_class_id", "classes", "parent_class"),
        Relation("subclass_ids", "classes", "subclasses", many=True),
        Relation("class_teacher_id", "teachers", "class_teacher"),
        Relation("main_class_id", "main_classes", "main_class"),
        Relation("trade_id", "trades", "trade"),
        Relation("_id", "class_subjects", "subjects", foreign_field="class_id", many=True),
        Relation("_id", "students", "students", foreign_field="class_id", many=True),
    ),
    RelationSet.CLASS_SUBJECT_DETAILS: (
        Relation("class_id", "classes", "class"),
        Relation("teacher_id", "teachers", "teacher"),
    ),
    RelationSet.TEACHER_DETAILS: (
        Relation("class_ids", "classes", "classes", many=True),
        Relation("subject_ids", "class_subjects", "subjects", many=True),
    ),
    RelationSet.STUDENT_DETAILS: (
        Relation("class_id", "classes", "class"),
    ),
    RelationSet.TIMETABLE_DETAILS: (
        Relation("class_id", "classes", "class"),
    ),
    RelationSet.JOIN_REQUEST_DETAILS: (
        Relation("school_id", "schools", "school"),
        Relation("invited_user_id", "users", "invited_user"),
        Relation("sent_by", "users", "sender"),
    ),
}

# Never returned from a hydrated lookup.
HIDDEN_FIELDS = ("password_hash",)


def _to_object_id(expr: Any) -> Dict[str, Any]:
    return {"$convert": {"input": expr, "to": "objectId", "onError": None, "onNull": None}}


def _temp(relation: Relation) -> str:
    return f"__{relation.as_field}_ref"


def _conversion(relation: Relation) -> Dict[str, Any]:
    source = f"${relation.local_field}"
    if relation.many:
        return {
            "$map": {
                "input": {"$ifNull": [source, []]},
                "as": "ref",
                "in": _to_object_id("$$ref"),
            }
        }
    return _to_object_id(source)


def _lookup(relation: Relation) -> List[Dict[str, Any]]:
    stages: List[Dict[str, Any]] = [{
        "$lookup": {
            "from": relation.collection,
            "localField": "_id" if relation.reverse else _temp(relation),
            "foreignField": relation.foreign_field,
            "as": relation.as_field,
        }
    }]
    if not relation.many:
        stages.append({"$addFields": {relation.as_field: {"$arrayElemAt": [f"${relation.as_field}", 0]}}})
    return stages


def relation_pipeline(
    relations: RelationSet,
    match: Optional[Dict[str, Any]] = None,
    sort: Optional[Dict[str, int]] = None,
) -> List[Dict[str, Any]]:
    """Build ``$match`` → id conversion → ``$lookup`` stages for ``relations``."""
    wanted = RELATIONS[relations]
    pipeline: List[Dict[str, Any]] = []
    if match:
        pipeline.append({"$match": match})
    if sort:
        pipeline.append({"$sort": sort})
    conversions = {_temp(r): _conversion(r) for r in wanted if not r.reverse}
    if conversions:
        pipeline.append({"$addFields": conversions})
    for relation in wanted:
        pipeline.extend(_lookup(relation))
    hidden = list(conversions) + [f"{r.as_field}.{name}" for r in wanted for name in HIDDEN_FIELDS]
    pipeline.append({"$project": {name: 0 for name in hidden}})
    return pipeline
