"""
媒体资源服务
处理图片上传、落盘、元数据维护和删除
"""

import logging
import re
import time
import uuid
from pathlib import Path
from typing import BinaryIO, List, Optional

from ..config.settings import settings
from ..core.database import DatabaseManager
from ..core.exceptions import FileTooLargeError, NotFoundError, ValidationError
from ..models.media import MediaAsset, MediaType
from ..schemas.media import MediaUpdateRequest
from .audit import record_admin_action

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]")
_CHUNK_SIZE = 64 * 1024

# 未指定 take 时 MENU 默认只返回前 3 张
DEFAULT_MENU_TAKE = 3


def build_storage_name(original_name: str, now_ms: Optional[int] = None) -> str:
    """生成落盘文件名：<毫秒时间戳>_<清洗后的文件名><扩展名>"""
    path = Path(original_name or "upload")
    base = _UNSAFE_CHARS.sub("_", path.stem)[:64] or "upload"
    ext = path.suffix or ".bin"
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{ts}_{base}{ext}"


class MediaService:
    """媒体资源服务"""

    def __init__(self, db: DatabaseManager, uploads_dir: Optional[str] = None):
        self.db = db
        self.uploads_dir = Path(uploads_dir or settings.uploads_dir)

    def list_assets(self, media_type: Optional[MediaType] = None) -> List[MediaAsset]:
        """后台列表，按类型、排序号排列"""
        if media_type is not None:
            rows = self.db.fetch_dicts(
                "SELECT * FROM media_assets WHERE type = ? ORDER BY sort_order, created_at",
                [media_type.value]
            )
        else:
            rows = self.db.fetch_dicts("SELECT * FROM media_assets ORDER BY type, sort_order, created_at")
        return [MediaAsset(**row) for row in rows]

    def list_published(self, media_type: Optional[MediaType] = None,
                       take: Optional[int] = None) -> List[MediaAsset]:
        """前台列表，只返回已发布的资源"""
        if media_type is MediaType.MENU and take is None:
            take = DEFAULT_MENU_TAKE

        query = "SELECT * FROM media_assets WHERE published"
        params: list = []
        if media_type is not None:
            query += " AND type = ? ORDER BY sort_order, created_at"
            params.append(media_type.value)
        else:
            query += " ORDER BY type, sort_order, created_at"
        if take is not None:
            query += " LIMIT ?"
            params.append(take)
        return [MediaAsset(**row) for row in self.db.fetch_dicts(query, params)]

    def get_asset(self, asset_id: str) -> MediaAsset:
        row = self.db.fetch_dict("SELECT * FROM media_assets WHERE id = ?", [asset_id])
        if not row:
            raise NotFoundError("媒体资源不存在", error_code="MEDIA_NOT_FOUND", details={"id": asset_id})
        return MediaAsset(**row)

    def _store_file(self, stream: BinaryIO, original_name: str) -> str:
        """分块写入 uploads 目录，超过大小限制时删除残留文件并报错"""
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        storage_name = build_storage_name(original_name)
        target = self.uploads_dir / storage_name
        written = 0
        with open(target, "wb") as out:
            while True:
                chunk = stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    out.close()
                    target.unlink(missing_ok=True)
                    raise FileTooLargeError(
                        "文件过大",
                        details={"max_bytes": settings.max_upload_bytes}
                    )
                out.write(chunk)
        return storage_name

    def create_asset(self, stream: BinaryIO, original_name: str, media_type: MediaType,
                     actor_id: Optional[str], alt: Optional[str] = None, sort_order: int = 0,
                     published: bool = True, width: Optional[int] = None,
                     height: Optional[int] = None) -> MediaAsset:
        """保存上传文件并登记资源"""
        storage_name = self._store_file(stream, original_name)
        asset_id = uuid.uuid4().hex
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO media_assets (
                        id, type, url, storage_key, alt, width, height,
                        sort_order, published, created_by_id
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [asset_id, media_type.value, f"/uploads/{storage_name}", storage_name,
                     alt, width, height, sort_order, published, actor_id]
                )
                record_admin_action(conn, actor_id, "media_create",
                                    {"id": asset_id, "type": media_type.value, "key": storage_name})
        except Exception:
            (self.uploads_dir / storage_name).unlink(missing_ok=True)
            raise
        return self.get_asset(asset_id)

    def update_asset(self, asset_id: str, data: MediaUpdateRequest,
                     actor_id: Optional[str]) -> MediaAsset:
        current = self.get_asset(asset_id)
        changes = data.model_dump(exclude_unset=True)
        merged = {**current.model_dump(), **changes}
        if merged["type"] is None or merged["sort_order"] is None or merged["published"] is None:
            raise ValidationError("type / sort_order / published 不能为空")

        with self.db.transaction() as conn:
            conn.execute(
                """
                UPDATE media_assets
                SET type = ?, alt = ?, sort_order = ?, published = ?, width = ?, height = ?
                WHERE id = ?
                """,
                [MediaType(merged["type"]).value, merged["alt"], merged["sort_order"],
                 merged["published"], merged["width"], merged["height"], asset_id]
            )
            record_admin_action(conn, actor_id, "media_update", {"id": asset_id, **changes})
        return self.get_asset(asset_id)

    def delete_asset(self, asset_id: str, actor_id: Optional[str]) -> None:
        """删除资源及其相册、公告关联，并尽力删除磁盘文件"""
        asset = self.get_asset(asset_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM announcement_media WHERE media_asset_id = ?", [asset_id])
            conn.execute("DELETE FROM gallery_items WHERE media_asset_id = ?", [asset_id])
            conn.execute("DELETE FROM media_assets WHERE id = ?", [asset_id])
            record_admin_action(conn, actor_id, "media_delete", {"id": asset_id})

        if asset.storage_key:
            try:
                (self.uploads_dir / asset.storage_key).unlink(missing_ok=True)
            except OSError:
                logger.warning("Failed to remove upload %s", asset.storage_key, exc_info=True)
