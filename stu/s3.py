from __future__ import annotations

import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ProfileNotFound

from .error import FatalStartupError

logger = logging.getLogger(__name__)

CONSOLE_BASE_URL = "https://s3.console.aws.amazon.com/s3"
DEFAULT_STORAGE_CLASS = "STANDARD"

ADDRESSING_STYLES = {"auto": "auto", "always": "path", "never": "virtual"}
PATH_STYLES = tuple(ADDRESSING_STYLES)


@dataclass(frozen=True)
class BucketItem:
    name: str
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class PrefixItem:
    name: str
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class FileItem:
    name: str
    size_byte: int
    last_modified: Optional[datetime] = None


Item = Union[BucketItem, PrefixItem, FileItem]


@dataclass(frozen=True)
class FileDetail:
    name: str
    size_byte: int
    last_modified: Optional[datetime]
    e_tag: str
    content_type: str
    storage_class: str
    key: str
    s3_uri: str
    arn: str
    object_url: str


@dataclass(frozen=True)
class FileVersion:
    version_id: str
    size_byte: int
    last_modified: Optional[datetime]
    is_latest: bool


@dataclass(frozen=True)
class ConsoleScope:
    bucket: Optional[str] = None
    prefix: str = ""
    name: Optional[str] = None


class S3Service:
    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        default_region: Optional[str] = None,
        path_style: str = "auto",
    ) -> None:
        if profile == "default":
            profile = None
        self.profile = profile
        self._region = region or default_region
        self._endpoint_url = endpoint_url
        if path_style not in ADDRESSING_STYLES:
            raise ValueError(f"unknown path style: {path_style}")
        self._addressing_style = ADDRESSING_STYLES[path_style]
        self._clients: dict[str, object] = {}

    def _profile_key(self, profile: Optional[str]) -> str:
        return profile or "__default__"

    def _client(self):
        key = self._profile_key(self.profile)
        if key in self._clients:
            return self._clients[key]
        if self.profile is None:
            session = boto3.session.Session()
        else:
            session = boto3.session.Session(profile_name=self.profile)
        kwargs = {"config": BotoConfig(s3={"addressing_style": self._addressing_style})}
        if self._region:
            kwargs["region_name"] = self._region
        if self._endpoint_url:
            kwargs["endpoint_url"] = self._endpoint_url
        client = session.client("s3", **kwargs)
        self._clients[key] = client
        return client

    def connect(self) -> None:
        # The client is built up front so worker threads only ever read it.
        try:
            self._client()
        except ProfileNotFound as exc:
            raise FatalStartupError(f"{exc}") from exc
        except BotoCoreError as exc:
            raise FatalStartupError(f"Failed to create S3 client: {exc}") from exc

    def region(self) -> str:
        if self._region:
            return self._region
        client = self._client()
        meta = getattr(client, "meta", None)
        region = getattr(meta, "region_name", None)
        return region or "us-east-1"

    async def list_top_level(self) -> list[BucketItem]:
        return await asyncio.to_thread(self._list_top_level)

    def _list_top_level(self) -> list[BucketItem]:
        client = self._client()
        response = client.list_buckets()
        buckets: list[BucketItem] = []
        for entry in response.get("Buckets", []):
            name = entry.get("Name")
            if not name:
                continue
            buckets.append(
                BucketItem(name=name, last_modified=entry.get("CreationDate"))
            )
        return buckets

    async def list_children(self, bucket: str, prefix: str) -> list[Item]:
        return await asyncio.to_thread(self._list_children, bucket, prefix)

    def _list_children(self, bucket: str, prefix: str) -> list[Item]:
        client = self._client()
        items: list[Item] = []
        continuation: Optional[str] = None
        while True:
            kwargs = {
                "Bucket": bucket,
                "Delimiter": "/",
                "Prefix": prefix,
                "MaxKeys": 1000,
            }
            if continuation:
                kwargs["ContinuationToken"] = continuation
            response = client.list_objects_v2(**kwargs)
            for entry in response.get("CommonPrefixes", []):
                value = entry.get("Prefix")
                if not value:
                    continue
                name = value[len(prefix) :].rstrip("/")
                if name:
                    items.append(PrefixItem(name=name))
            for entry in response.get("Contents", []):
                key = entry.get("Key")
                if not key:
                    continue
                if key.endswith("/"):
                    continue
                if prefix and key == prefix:
                    continue
                items.append(
                    FileItem(
                        name=key[len(prefix) :],
                        size_byte=int(entry.get("Size", 0)),
                        last_modified=entry.get("LastModified"),
                    )
                )
            if response.get("IsTruncated"):
                continuation = response.get("NextContinuationToken")
            else:
                break
        return items

    async def get_object_metadata(
        self, bucket: str, key: str, name: str, size_byte: int
    ) -> FileDetail:
        return await asyncio.to_thread(
            self._get_object_metadata, bucket, key, name, size_byte
        )

    def _get_object_metadata(
        self, bucket: str, key: str, name: str, size_byte: int
    ) -> FileDetail:
        client = self._client()
        response = client.head_object(Bucket=bucket, Key=key)
        region = self.region()
        return FileDetail(
            name=name,
            size_byte=size_byte,
            last_modified=response.get("LastModified"),
            e_tag=str(response.get("ETag", "")).strip('"'),
            content_type=response.get("ContentType") or "",
            storage_class=response.get("StorageClass") or DEFAULT_STORAGE_CLASS,
            key=key,
            s3_uri=f"s3://{bucket}/{key}",
            arn=f"arn:aws:s3:::{bucket}/{key}",
            object_url=f"https://{bucket}.s3.{region}.amazonaws.com/{quote(key)}",
        )

    async def get_object_versions(self, bucket: str, key: str) -> list[FileVersion]:
        return await asyncio.to_thread(self._get_object_versions, bucket, key)

    def _get_object_versions(self, bucket: str, key: str) -> list[FileVersion]:
        client = self._client()
        versions: list[FileVersion] = []
        key_marker: Optional[str] = None
        version_marker: Optional[str] = None
        while True:
            kwargs = {"Bucket": bucket, "Prefix": key}
            if key_marker:
                kwargs["KeyMarker"] = key_marker
            if version_marker:
                kwargs["VersionIdMarker"] = version_marker
            response = client.list_object_versions(**kwargs)
            for entry in response.get("Versions", []):
                # Prefix matching also returns "key.bak" and friends.
                if entry.get("Key") != key:
                    continue
                versions.append(
                    FileVersion(
                        version_id=entry.get("VersionId") or "null",
                        size_byte=int(entry.get("Size", 0)),
                        last_modified=entry.get("LastModified"),
                        is_latest=bool(entry.get("IsLatest")),
                    )
                )
            if response.get("IsTruncated"):
                key_marker = response.get("NextKeyMarker")
                version_marker = response.get("NextVersionIdMarker")
            else:
                break
        return versions

    async def get_object_bytes(self, bucket: str, key: str) -> bytes:
        return await asyncio.to_thread(self._get_object_bytes, bucket, key)

    def _get_object_bytes(self, bucket: str, key: str) -> bytes:
        client = self._client()
        response = client.get_object(Bucket=bucket, Key=key)
        body = response.get("Body")
        if body is None:
            return b""
        try:
            return body.read()
        finally:
            try:
                body.close()
            except Exception:
                pass

    def console_url(self, scope: ConsoleScope) -> str:
        region = quote(self.region())
        if scope.bucket is None:
            return f"{CONSOLE_BASE_URL}/buckets?region={region}"
        bucket = quote(scope.bucket)
        if scope.name is not None:
            prefix = quote(f"{scope.prefix}{scope.name}")
            return f"{CONSOLE_BASE_URL}/object/{bucket}?region={region}&prefix={prefix}"
        prefix = quote(scope.prefix)
        return f"{CONSOLE_BASE_URL}/buckets/{bucket}?region={region}&prefix={prefix}"

    def open_console_url(self, scope: ConsoleScope) -> None:
        url = self.console_url(scope)
        logger.debug("opening console url %s", url)
        if not webbrowser.open(url):
            raise RuntimeError(f"Failed to open browser for {url}")
