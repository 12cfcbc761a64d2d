"""
Strava常量定义
"""

# Strava API端点
STRAVA_AUTH_URL = "https://www.strava.com/oauth/authorize"
STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
STRAVA_DEAUTHORIZE_URL = "https://www.strava.com/oauth/deauthorize"
STRAVA_BASE_URL = "https://www.strava.com/api/v3"

# API资源端点
ATHLETE_ENDPOINT = f"{STRAVA_BASE_URL}/athlete"
ACTIVITIES_ENDPOINT = f"{STRAVA_BASE_URL}/athlete/activities"

# 单页最大活动数（Strava上限）
ACTIVITIES_PER_PAGE = 200

# OAuth Scopes
STRAVA_SCOPES = [
    ("activity:read_all", "读取全部运动记录（含私密记录）"),
    ("profile:read_all", "读取个人资料"),
]
