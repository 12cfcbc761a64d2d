"""手动同步用户的全部第三方集成

使用方法:
    USER_ID=your-user-id python scripts/manual_sync.py
    USER_ID=your-user-id DAYS=30 FORCE=1 python scripts/manual_sync.py
"""
import asyncio
import sys
import os
import uuid

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta
from app.api.dependencies import build_integration_service
from app.database.session import engine
from app.integrations.registry import ProviderRegistry
from app.schemas.integration import SyncOptions
from app.utils.datetime_helper import utc_now

# 从环境变量读取参数
USER_ID = os.environ.get("USER_ID", "")
DAYS = int(os.environ.get("DAYS", "7"))
FORCE = os.environ.get("FORCE", "") == "1"


async def sync_user():
    if not USER_ID:
        print("错误: 请设置 USER_ID 环境变量")
        print("使用方法: USER_ID=your-user-id python scripts/manual_sync.py")
        sys.exit(1)

    service = build_integration_service()
    user_id = uuid.UUID(USER_ID)
    now = utc_now()
    options = SyncOptions(start_date=now - timedelta(days=DAYS), end_date=now, force_resync=FORCE)

    try:
        integrations = await service.get_active_integrations(user_id)
        print("=" * 60)
        print(f"共 {len(integrations)} 个ACTIVE集成，同步最近 {DAYS} 天{'（强制覆盖）' if FORCE else ''}")
        print("=" * 60)

        for integration in integrations:
            try:
                result = await service.sync_health_data(integration.id, options)
                print(
                    f"{integration.provider.value}: 新增{result.records_synced} "
                    f"跳过{result.records_skipped} 错误{result.errors} ({result.duration_ms}ms)"
                )
                for message in result.error_messages or []:
                    print(f"  - {message}")
            except Exception as e:
                print(f"{integration.provider.value}: 同步失败 - {e}")

        print("\n✅ 完成！")
    finally:
        await ProviderRegistry.close_default()
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(sync_user())
