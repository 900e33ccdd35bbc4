"""
对象存储服务 - S3 兼容（R2 / MinIO / S3）

负责保存用户上传的照片，并在存储不可用时回退为内联 data URL
"""
import secrets
import string
import time
from io import BytesIO
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from comico.core import get_settings, get_logger
from comico.core.exceptions import StorageError, StorageNotConfiguredError
from comico.models.comic_content import (
    InlinePhoto,
    PhotoInput,
    RawPhoto,
    RemotePhoto,
    ResolvedPhoto,
)

logger = get_logger(__name__)

# 预签名链接有效期（7 天，S3 上限）
PRESIGNED_EXPIRES = 7 * 24 * 60 * 60


def build_photo_key(user_id: str, comic_id: str, extension: str) -> str:
    """comics/{user}/{comic}/photo-{毫秒时间戳}-{7位随机}.{扩展名}"""
    alphabet = string.ascii_lowercase + string.digits
    random_part = "".join(secrets.choice(alphabet) for _ in range(7))
    return f"comics/{user_id}/{comic_id}/photo-{int(time.time() * 1000)}-{random_part}.{extension or 'jpg'}"


class StorageService:
    """对象存储服务"""

    def __init__(self):
        settings = get_settings()
        self.bucket = settings.storage_bucket
        self.endpoint_url = settings.storage_endpoint_url or None
        self.public_url = settings.storage_public_url.rstrip("/")
        self._access_key_id = settings.storage_access_key_id
        self._secret_access_key = settings.storage_secret_access_key
        self._region = settings.storage_region
        self._client = None

    @property
    def configured(self) -> bool:
        return bool(self.bucket)

    @property
    def client(self):
        if not self.configured:
            raise StorageNotConfiguredError("对象存储未配置")
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self._access_key_id or None,
                aws_secret_access_key=self._secret_access_key or None,
                region_name=self._region,
                config=Config(
                    signature_version="s3v4",
                    retries={"max_attempts": 3, "mode": "adaptive"},
                ),
            )
            logger.info(f"对象存储初始化完成，bucket: {self.bucket}")
        return self._client

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """
        上传文件

        Returns:
            配置了公开域名时返回公开链接，否则返回预签名链接
        """
        client = self.client
        try:
            client.upload_fileobj(
                BytesIO(data),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
            logger.info(f"已上传 {key}（{len(data)} 字节）")
            if self.public_url:
                return f"{self.public_url}/{key}"
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=PRESIGNED_EXPIRES,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"上传失败: {e}") from e

    def key_from_url(self, url: str) -> Optional[str]:
        """从公开链接或预签名链接还原对象 key，非本存储的链接返回 None"""
        if self.public_url and url.startswith(self.public_url + "/"):
            return url[len(self.public_url) + 1:]
        path = unquote(urlparse(url).path).lstrip("/")
        if path.startswith(self.bucket + "/"):
            path = path[len(self.bucket) + 1:]
        return path if path.startswith("comics/") else None

    def delete(self, url: str) -> bool:
        """删除对象，不是本存储的链接时返回 False"""
        key = self.key_from_url(url)
        if not key:
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"已删除 {key}")
            return True
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"删除失败: {e}") from e


class PhotoIngestService:
    """
    照片入库

    原始字节先上传对象存储，失败则转 data URL，再失败则丢弃该照片；
    远程链接和 data URL 原样透传
    """

    def __init__(self, storage: Optional[StorageService] = None):
        self.storage = storage or get_storage_service()

    def resolve_one(
        self,
        index: int,
        photo: PhotoInput,
        user_id: str,
        comic_id: str,
    ) -> Optional[ResolvedPhoto]:
        if isinstance(photo, RemotePhoto):
            return ResolvedPhoto(index=index, url=photo.url, source="remote")
        if isinstance(photo, InlinePhoto):
            return ResolvedPhoto(index=index, url=photo.data_url, source="inline")
        if not isinstance(photo, RawPhoto):
            raise TypeError(f"不支持的照片类型: {type(photo).__name__}")

        try:
            key = build_photo_key(user_id, comic_id, photo.extension)
            url = self.storage.upload(photo.data, key, photo.mime_type)
            return ResolvedPhoto(index=index, url=url, source="storage")
        except StorageError as e:
            logger.warning(f"照片 {index + 1} 上传失败，改用 data URL: {e}")

        try:
            return ResolvedPhoto(index=index, url=photo.to_data_url(), source="inline")
        except ValueError as e:
            logger.warning(f"照片 {index + 1} 转 data URL 失败，已丢弃: {e}")
            return None

    def resolve(
        self,
        photos: list[PhotoInput],
        user_id: str,
        comic_id: str,
    ) -> list[ResolvedPhoto]:
        """按顺序处理全部照片，index 保持原始位置"""
        resolved = []
        for index, photo in enumerate(photos):
            item = self.resolve_one(index, photo, user_id, comic_id)
            if item is not None:
                resolved.append(item)
        logger.info(f"照片处理完成: {len(resolved)}/{len(photos)} 张可用")
        return resolved


# 全局单例
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """获取对象存储服务单例"""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
