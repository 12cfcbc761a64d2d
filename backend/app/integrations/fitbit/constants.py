"""
Fitbit常量定义
"""

# Fitbit API端点
FITBIT_AUTH_URL = "https://www.fitbit.com/oauth2/authorize"
FITBIT_TOKEN_URL = "https://api.fitbit.com/oauth2/token"
FITBIT_REVOKE_URL = "https://api.fitbit.com/oauth2/revoke"
FITBIT_BASE_URL = "https://api.fitbit.com/1"

# API资源端点（按日期拉取）
PROFILE_ENDPOINT = f"{FITBIT_BASE_URL}/user/-/profile.json"
ACTIVITY_ENDPOINT = f"{FITBIT_BASE_URL}/user/-/activities/date/{{date}}.json"
SLEEP_ENDPOINT = f"{FITBIT_BASE_URL}/user/-/sleep/date/{{date}}.json"
HEART_ENDPOINT = f"{FITBIT_BASE_URL}/user/-/activities/heart/date/{{date}}/1d.json"
WEIGHT_ENDPOINT = f"{FITBIT_BASE_URL}/user/-/body/log/weight/date/{{date}}/30d.json"

# OAuth Scopes
FITBIT_SCOPES = [
    ("activity", "步数、距离、卡路里等活动数据"),
    ("heartrate", "心率数据"),
    ("sleep", "睡眠数据"),
    ("weight", "体重数据"),
    ("nutrition", "饮食数据"),
    ("profile", "个人资料"),
]
