"""Transports: one per source kind."""

from datafetch.infrastructure.transports.http import HttpTransport
from datafetch.infrastructure.transports.onedrive import OneDriveTransport
from datafetch.infrastructure.transports.gdrive import GoogleDriveTransport
from datafetch.infrastructure.transports.huggingface import HuggingFaceTransport
from datafetch.infrastructure.transports.gcs import GcsTransport, GcsCredentials
from datafetch.infrastructure.transports.git import GitTransport

__all__ = [
    "HttpTransport",
    "OneDriveTransport",
    "GoogleDriveTransport",
    "HuggingFaceTransport",
    "GcsTransport",
    "GcsCredentials",
    "GitTransport",
]
