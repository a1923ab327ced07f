"""
Prometheus metrics for the photo service.

Shared by the API process and the standalone moderation worker. The API
exposes them on /metrics; the worker serves them with start_http_server.
"""
import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Privacy
privacy_decisions = Counter(
    'photo_service_privacy_decisions_total',
    'Media access decisions',
    ['outcome', 'rule'],
)

# Collaborators
collaborator_failures = Counter(
    'photo_service_collaborator_failures_total',
    'Failed calls to external services',
    ['service'],
)

# Voice moderation
moderation_outcomes = Counter(
    'photo_service_voice_moderation_total',
    'Voice prompts moderated',
    ['outcome'],
)
moderation_in_progress = Gauge(
    'photo_service_voice_moderation_in_progress',
    'Voice prompts currently being moderated',
)
moderation_batch_size = Histogram(
    'photo_service_voice_moderation_batch_size',
    'Voice prompts picked up per polling pass',
    buckets=[0, 1, 2, 5, 10, 20, 50],
)
transcription_duration = Histogram(
    'photo_service_transcription_duration_seconds',
    'Speech-to-text duration per clip',
    buckets=[0.5, 1, 2, 5, 10, 20, 60],
)

# Verification
verification_decisions = Counter(
    'photo_service_verification_decisions_total',
    'Face verification outcomes',
    ['decision'],
)
face_similarity_score = Histogram(
    'photo_service_face_similarity_score',
    'Face similarity scores',
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)


def start_metrics_server(port: int = 9090):
    """Serve metrics over HTTP (standalone worker)."""
    start_http_server(port)
    logger.info(f"Metrics server started on port {port}")


def record_privacy_decision(outcome: str, rule: str):
    """Record a media access decision."""
    privacy_decisions.labels(outcome=outcome, rule=rule).inc()


def record_collaborator_failure(service: str):
    """Record a failed collaborator call."""
    collaborator_failures.labels(service=service).inc()


def record_moderation_outcome(outcome: str):
    """Record a voice moderation result."""
    moderation_outcomes.labels(outcome=outcome).inc()


def record_verification(decision: str, similarity: float | None = None):
    """Record a verification decision and, when one was computed, its score."""
    verification_decisions.labels(decision=decision).inc()
    if similarity is not None:
        face_similarity_score.observe(similarity)
