"""
管理命令

用法：
    python -m lorange_server.manage create-user <email> <password>
    python -m lorange_server.manage seed
"""

import argparse
import sys

from .core.database import DatabaseManager
from .core.exceptions import BaseApplicationError
from .core.log_config import setup_logging
from .services.auth_service import AuthService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lorange-manage", description="L'Orange 后台管理命令")
    parser.add_argument("--db", default=None, help="DuckDB 文件路径，默认读取配置")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="创建管理员，已存在则重置密码")
    create.add_argument("email")
    create.add_argument("password")

    sub.add_parser("seed", help="不存在时创建默认管理员 admin@lorange.local")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("INFO")

    db = DatabaseManager(args.db)
    service = AuthService(db)
    try:
        if args.command == "create-user":
            user = service.upsert_admin(args.email, args.password)
            print(f"管理员已就绪: {user.email}")
        elif args.command == "seed":
            user = service.seed_default_admin()
            if user:
                print(f"已创建默认管理员: {user.email}")
            else:
                print("默认管理员已存在，跳过")
    except BaseApplicationError as e:
        print(f"操作失败: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
