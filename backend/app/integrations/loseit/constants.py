"""
Lose It!常量定义
"""

# Lose It! API端点
LOSE_IT_BASE_URL = "https://api.loseit.com"
LOSE_IT_AUTH_URL = f"{LOSE_IT_BASE_URL}/oauth/authorize"
LOSE_IT_TOKEN_URL = f"{LOSE_IT_BASE_URL}/oauth/token"

# API资源端点
NUTRITION_ENDPOINT = f"{LOSE_IT_BASE_URL}/v1/nutrition/daily"
WEIGHT_ENDPOINT = f"{LOSE_IT_BASE_URL}/v1/weight/entries"
EXERCISE_ENDPOINT = f"{LOSE_IT_BASE_URL}/v1/exercise/entries"
PROFILE_ENDPOINT = f"{LOSE_IT_BASE_URL}/v1/user/profile"

# OAuth Scopes
LOSE_IT_SCOPES = [
    ("food.read", "饮食记录"),
    ("weight.read", "体重记录"),
    ("exercise.read", "运动记录"),
]
