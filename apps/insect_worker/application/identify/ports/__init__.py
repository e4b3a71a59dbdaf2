"""Identification Pipeline Ports."""

from insect_jobs.application.ports.record_store import RecordStorePort
from insect_worker.application.identify.ports.classifier import ClassifierPort
from insect_worker.application.identify.ports.object_storage import ObjectStoragePort

__all__ = ["ClassifierPort", "ObjectStoragePort", "RecordStorePort"]
