"""
Fetching the exercise library dataset

A source reference is either an http(s) URL, which is streamed with requests,
or a name in the "exercise_library" storage (local files in development, S3 in
deployed environments). Either way the caller gets an iterator of byte chunks
so the dataset never has to be held in memory as a whole.
"""

from collections.abc import Iterator
from logging import getLogger
from urllib.parse import urlparse

import requests
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from fitlog.storage import EXERCISE_LIBRARY_STORAGE

from .exceptions import SourceNotFound, SourceTransportError

logger = getLogger(__name__)

HTTP_SCHEMES = ("http", "https")

#: HTTP statuses which mean the dataset is not there rather than unreachable
NOT_FOUND_STATUSES = (404, 410)

STORAGE_ERRORS = (OSError, BotoCoreError, ClientError)


def is_http_source(source_reference: str) -> bool:
    return urlparse(source_reference).scheme.lower() in HTTP_SCHEMES


def fetch(source_reference: str, *, chunk_size: int | None = None) -> Iterator[bytes]:
    """
    Open ``source_reference`` and return an iterator over its bytes.

    The source is opened before this returns, so a missing source raises
    SourceNotFound here. Errors while reading are raised as
    SourceTransportError from the iterator.
    """
    import_settings = settings.EXERCISE_LIBRARY_IMPORT
    if chunk_size is None:
        chunk_size = import_settings.get("CHUNK_SIZE", 64 * 1024)

    if not source_reference:
        raise SourceNotFound(source_reference, "no source is configured")

    if is_http_source(source_reference):
        return _fetch_http(
            source_reference,
            chunk_size=chunk_size,
            timeout=import_settings.get("HTTP_TIMEOUT", 30),
        )
    return _fetch_storage(source_reference, chunk_size=chunk_size)


def _fetch_storage(name: str, *, chunk_size: int) -> Iterator[bytes]:
    logger.info("Opening %s from the exercise library storage", name)
    try:
        handle = EXERCISE_LIBRARY_STORAGE.open(name, "rb")
    except FileNotFoundError as exc:
        raise SourceNotFound(name, "no such file in storage") from exc
    except STORAGE_ERRORS as exc:
        raise SourceTransportError(name, str(exc)) from exc
    return _iter_storage_file(name, handle, chunk_size)


def _iter_storage_file(name, handle, chunk_size):
    try:
        with handle:
            for chunk in handle.chunks(chunk_size):
                if chunk:
                    yield chunk
    except STORAGE_ERRORS as exc:
        raise SourceTransportError(name, str(exc)) from exc


def _fetch_http(url: str, *, chunk_size: int, timeout) -> Iterator[bytes]:
    logger.info("Requesting %s", url)
    try:
        resp = requests.get(url, stream=True, timeout=timeout)
    except requests.RequestException as exc:
        raise SourceTransportError(url, str(exc)) from exc

    if resp.status_code in NOT_FOUND_STATUSES:
        resp.close()
        raise SourceNotFound(url, f"HTTP {resp.status_code}")

    try:
        resp.raise_for_status()
    except requests.HTTPError as exc:
        resp.close()
        raise SourceTransportError(url, str(exc)) from exc

    return _iter_response(url, resp, chunk_size)


def _iter_response(url, resp, chunk_size):
    try:
        with resp:
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
    except requests.RequestException as exc:
        raise SourceTransportError(url, str(exc)) from exc
