"""
公告服务
公告本身和配图关联（announcement_media）一起维护
"""

import datetime
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from ..core.database import DatabaseManager
from ..core.exceptions import NotFoundError, ValidationError
from ..models.media import Announcement, LinkedMediaAsset
from ..schemas.media import AnnouncementCreateRequest, AnnouncementUpdateRequest, MediaLink
from .audit import record_admin_action


def dedupe_links(links: List[MediaLink]) -> List[MediaLink]:
    """同一资源重复出现时只保留第一次"""
    seen = set()
    result = []
    for link in links:
        if link.id in seen:
            continue
        seen.add(link.id)
        result.append(link)
    return result


class AnnouncementService:
    """公告服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _load_media(self, announcement_ids: List[str]) -> Dict[str, List[LinkedMediaAsset]]:
        """批量读取公告配图，按关联排序号排列"""
        if not announcement_ids:
            return {}
        placeholders = ", ".join("?" for _ in announcement_ids)
        rows = self.db.fetch_dicts(
            f"""
            SELECT am.announcement_id, am.sort_order AS link_sort_order, m.*
            FROM announcement_media am
            JOIN media_assets m ON m.id = am.media_asset_id
            WHERE am.announcement_id IN ({placeholders})
            ORDER BY am.announcement_id, am.sort_order
            """,
            announcement_ids
        )
        media: Dict[str, List[LinkedMediaAsset]] = defaultdict(list)
        for row in rows:
            announcement_id = row.pop("announcement_id")
            media[announcement_id].append(LinkedMediaAsset(**row))
        return media

    def _attach_media(self, rows: List[dict]) -> List[Announcement]:
        media = self._load_media([row["id"] for row in rows])
        return [Announcement(**row, media_assets=media.get(row["id"], [])) for row in rows]

    def list_announcements(self, published_only: bool = False) -> List[Announcement]:
        """公告列表，日期新的在前"""
        query = "SELECT * FROM announcements"
        if published_only:
            query += " WHERE published"
        query += " ORDER BY date DESC, created_at DESC"
        return self._attach_media(self.db.fetch_dicts(query))

    def get_announcement(self, announcement_id: str) -> Announcement:
        row = self.db.fetch_dict("SELECT * FROM announcements WHERE id = ?", [announcement_id])
        if not row:
            raise NotFoundError("公告不存在", error_code="ANNOUNCEMENT_NOT_FOUND",
                                details={"id": announcement_id})
        return self._attach_media([row])[0]

    def _replace_links(self, conn, announcement_id: str, links: List[MediaLink]) -> None:
        """整体替换配图关联；引用不存在的资源时报错"""
        links = dedupe_links(links)
        if links:
            ids = [link.id for link in links]
            placeholders = ", ".join("?" for _ in ids)
            found = {
                row[0] for row in conn.execute(
                    f"SELECT id FROM media_assets WHERE id IN ({placeholders})", ids
                ).fetchall()
            }
            missing = [i for i in ids if i not in found]
            if missing:
                raise NotFoundError("媒体资源不存在", error_code="MEDIA_NOT_FOUND",
                                    details={"missing": missing})

        conn.execute("DELETE FROM announcement_media WHERE announcement_id = ?", [announcement_id])
        for link in links:
            conn.execute(
                "INSERT INTO announcement_media (announcement_id, media_asset_id, sort_order) VALUES (?, ?, ?)",
                [announcement_id, link.id, link.sort_order]
            )

    def create_announcement(self, data: AnnouncementCreateRequest,
                            actor_id: Optional[str]) -> Announcement:
        announcement_id = uuid.uuid4().hex
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO announcements (id, date, title, description, published)
                VALUES (?, ?, ?, ?, ?)
                """,
                [announcement_id, data.date, data.title, data.description, data.published]
            )
            self._replace_links(conn, announcement_id, data.media)
            record_admin_action(conn, actor_id, "announcement_create",
                                {"id": announcement_id, "title": data.title})
        return self.get_announcement(announcement_id)

    def update_announcement(self, announcement_id: str, data: AnnouncementUpdateRequest,
                            actor_id: Optional[str]) -> Announcement:
        """部分更新；提供 media 时整体替换配图"""
        current = self.get_announcement(announcement_id)
        changes = data.model_dump(exclude_unset=True)
        for required in ("date", "title", "published"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} 不能为空")

        with self.db.transaction() as conn:
            conn.execute(
                """
                UPDATE announcements
                SET date = ?, title = ?, description = ?, published = ?, updated_at = ?
                WHERE id = ?
                """,
                [changes.get("date", current.date), changes.get("title", current.title),
                 changes.get("description", current.description),
                 changes.get("published", current.published),
                 datetime.datetime.now(), announcement_id]
            )
            if data.media is not None:
                self._replace_links(conn, announcement_id, data.media)
            record_admin_action(conn, actor_id, "announcement_update",
                                {"id": announcement_id, "fields": sorted(changes)})
        return self.get_announcement(announcement_id)

    def delete_announcement(self, announcement_id: str, actor_id: Optional[str]) -> None:
        """删除公告及其配图关联，资源本身保留"""
        self.get_announcement(announcement_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM announcement_media WHERE announcement_id = ?", [announcement_id])
            conn.execute("DELETE FROM announcements WHERE id = ?", [announcement_id])
            record_admin_action(conn, actor_id, "announcement_delete", {"id": announcement_id})
