"""
IP 地理位置查询
使用 MaxMind GeoLite2-City 数据库（geoip2），未配置数据库时只使用 CDN 传来的城市/国家头
"""

import logging
from typing import Optional, Tuple

import geoip2.database
import geoip2.errors

logger = logging.getLogger(__name__)


class GeoLocator:
    """按 IP 查城市和国家代码，查不到的字段用请求头里的值补上"""

    def __init__(self, reader: Optional[geoip2.database.Reader] = None):
        self.reader = reader

    @property
    def enabled(self) -> bool:
        return self.reader is not None

    def lookup(self, ip: Optional[str], header_city: Optional[str] = None,
               header_country: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
        city, country = None, None
        if self.reader is not None and ip:
            try:
                response = self.reader.city(ip)
                city = response.city.name
                country = response.country.iso_code
            except geoip2.errors.AddressNotFoundError:
                # 内网地址、保留地址
                pass
            except ValueError:
                logger.debug("Not a valid IP address: %r", ip)
        return city or header_city or None, country or header_country or None

    def close(self) -> None:
        if self.reader is not None:
            self.reader.close()
            self.reader = None


def open_geo_locator(database_path: Optional[str]) -> GeoLocator:
    """打开 GeoLite2 数据库；路径为空或文件不可用时返回只用请求头的 GeoLocator"""
    if not database_path:
        return GeoLocator()
    try:
        reader = geoip2.database.Reader(database_path)
    except (OSError, ValueError) as e:
        logger.warning("GeoIP database unavailable at %s: %s", database_path, e)
        return GeoLocator()
    logger.info("GeoIP database loaded: %s", database_path)
    return GeoLocator(reader)
