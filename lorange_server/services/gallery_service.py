"""
相册服务
相册条目以资源ID为主键，引用 media_assets
"""

from typing import List, Optional

from ..core.database import DatabaseManager
from ..core.exceptions import NotFoundError, ValidationError
from ..models.media import GalleryItem
from ..schemas.media import GalleryLinkResponse, GalleryUpdateRequest, GalleryUpsertRequest
from .audit import record_admin_action

_GALLERY_SELECT = """
    SELECT m.id, m.type, m.url, m.alt, m.width, m.height,
           g.sort_order, g.published
    FROM gallery_items g
    JOIN media_assets m ON m.id = g.media_asset_id
"""


class GalleryService:
    """相册服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_items(self) -> List[GalleryItem]:
        """后台列表，包含未发布的条目"""
        rows = self.db.fetch_dicts(_GALLERY_SELECT + " ORDER BY g.sort_order, m.created_at")
        return [GalleryItem(**row) for row in rows]

    def list_public(self) -> List[GalleryItem]:
        """前台列表：相册条目和资源本身都已发布"""
        rows = self.db.fetch_dicts(
            _GALLERY_SELECT + " WHERE g.published AND m.published ORDER BY g.sort_order, m.created_at"
        )
        return [GalleryItem(**row) for row in rows]

    def get_link(self, media_asset_id: str) -> GalleryLinkResponse:
        row = self.db.fetch_dict(
            "SELECT media_asset_id, sort_order, published FROM gallery_items WHERE media_asset_id = ?",
            [media_asset_id]
        )
        if not row:
            raise NotFoundError("相册条目不存在", error_code="GALLERY_ITEM_NOT_FOUND",
                                details={"media_asset_id": media_asset_id})
        return GalleryLinkResponse(**row)

    def upsert(self, data: GalleryUpsertRequest, actor_id: Optional[str]) -> GalleryLinkResponse:
        """加入相册，已存在则更新排序和发布状态"""
        with self.db.transaction() as conn:
            asset = conn.execute(
                "SELECT id FROM media_assets WHERE id = ?", [data.media_asset_id]
            ).fetchone()
            if not asset:
                raise NotFoundError("媒体资源不存在", error_code="MEDIA_NOT_FOUND",
                                    details={"id": data.media_asset_id})
            existing = conn.execute(
                "SELECT 1 FROM gallery_items WHERE media_asset_id = ?", [data.media_asset_id]
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE gallery_items SET sort_order = ?, published = ? WHERE media_asset_id = ?",
                    [data.sort_order, data.published, data.media_asset_id]
                )
            else:
                conn.execute(
                    "INSERT INTO gallery_items (media_asset_id, sort_order, published) VALUES (?, ?, ?)",
                    [data.media_asset_id, data.sort_order, data.published]
                )
            record_admin_action(conn, actor_id, "gallery_upsert", data.model_dump())
        return self.get_link(data.media_asset_id)

    def update(self, media_asset_id: str, data: GalleryUpdateRequest,
               actor_id: Optional[str]) -> GalleryLinkResponse:
        current = self.get_link(media_asset_id)
        changes = data.model_dump(exclude_unset=True)
        if any(value is None for value in changes.values()):
            raise ValidationError("sort_order / published 不能为空")

        merged = {**current.model_dump(), **changes}
        with self.db.transaction() as conn:
            conn.execute(
                "UPDATE gallery_items SET sort_order = ?, published = ? WHERE media_asset_id = ?",
                [merged["sort_order"], merged["published"], media_asset_id]
            )
            record_admin_action(conn, actor_id, "gallery_update",
                                {"media_asset_id": media_asset_id, **changes})
        return self.get_link(media_asset_id)

    def remove(self, media_asset_id: str, actor_id: Optional[str]) -> None:
        """从相册移除，资源本身保留"""
        self.get_link(media_asset_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM gallery_items WHERE media_asset_id = ?", [media_asset_id])
            record_admin_action(conn, actor_id, "gallery_remove", {"media_asset_id": media_asset_id})
