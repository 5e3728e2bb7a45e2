# tests/test_obstacle_service.py
import json

import pytest

from app.core.errors import ClassificationUnavailable
from app.models.datasets import ObstacleReportRequest
from app.services.obstacle_service import ObstacleService, parse_classification

STATION = [121.6085, 23.9735]


class StaticClassifier:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def classify(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


class FailingClassifier:
    def classify(self, prompt: str) -> str:
        raise ConnectionError("model offline")


def request(**overrides):
    data = dict(type="construction", location=STATION, description="Sidewalk dug up", severity="high")
    data.update(overrides)
    return ObstacleReportRequest(**data)


def test_report_without_classifier_uses_defaults(fake_clock):
    service = ObstacleService(clock=fake_clock)
    report = service.report(request())

    assert report.id.startswith(f"obs_{int(fake_clock().timestamp() * 1000)}_")
    assert report.confidence == 0.3
    assert report.type == "construction"
    assert report.severity == "high"
    assert report.status == "reported"
    assert service.get(report.id) == report


def test_classifier_answer_is_applied():
    classifier = StaticClassifier(
        json.dumps({"confidence": 0.9, "suggested_type": "road_closure", "suggested_severity": "critical"})
    )
    report = ObstacleService(classifier=classifier).report(request())

    assert report.confidence == 0.9
    assert report.type == "road_closure"
    assert report.severity == "critical"
    assert "Sidewalk dug up" in classifier.prompts[0]


@pytest.mark.parametrize(
    "classifier",
    [StaticClassifier("not json"), StaticClassifier('{"confidence": 7}'), FailingClassifier()],
)
def test_classifier_failures_fall_back(classifier):
    report = ObstacleService(classifier=classifier).report(request())
    assert report.confidence == 0.3
    assert report.type == "construction"
    assert report.severity == "high"


def test_parse_classification_rejects_garbage():
    with pytest.raises(ClassificationUnavailable):
        parse_classification("[]")


def test_obstacles_near_sorted_by_confidence():
    service = ObstacleService(classifier=StaticClassifier('{"confidence": 0.8}'))
    confident = service.report(request())
    service.classifier = None
    unsure = service.report(request(location=[STATION[0] + 0.001, STATION[1]]))
    service.report(request(location=[121.7, 23.9]))

    assert [r.id for r in service.obstacles_near(STATION, 500)] == [confident.id, unsure.id]


def test_resolved_reports_are_inactive():
    service = ObstacleService()
    report = service.report(request())
    assert len(service.active_obstacle_points()) == 1

    assert service.resolve(report.id) is True
    assert service.get(report.id).status == "resolved"
    assert service.get(report.id).resolved_at is not None
    assert service.active_obstacles() == []
    assert service.resolve("obs_unknown") is False


def test_check_route_flags_nearby_reports():
    service = ObstacleService()
    service.report(request(type="stepped_path"))

    hit = service.check_route([[121.6, 23.97], [STATION[0], STATION[1] + 0.0003]])
    assert hit.has_obstacles is True
    assert hit.suggestions == ["This section has steps and is not wheelchair accessible"]
    assert hit.warning is not None

    miss = service.check_route([[121.6, 23.97], [121.601, 23.971]])
    assert miss.has_obstacles is False
    assert miss.warning is None


def test_user_messages():
    service = ObstacleService()
    assert "Construction" in service.user_message(service.report(request()))
    assert service.user_message(service.report(request(type="other"))).startswith("Obstacle report recorded")


def test_snapshot_roundtrip(tmp_path):
    path = tmp_path / "reports.json"
    first = ObstacleService(snapshot_path=path)
    report = first.report(request())
    first.resolve(report.id)

    second = ObstacleService(snapshot_path=path)
    restored = second.get(report.id)
    assert restored is not None
    assert restored.status == "resolved"
    assert second.active_obstacles() == []


def test_corrupt_snapshot_is_ignored(tmp_path):
    path = tmp_path / "reports.json"
    path.write_text("{not json", encoding="utf-8")
    assert ObstacleService(snapshot_path=path).active_obstacles() == []
