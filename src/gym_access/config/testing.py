ENVIRONMENT = "testing"

JWT_SECRET = "test-jwt-secret"
JWT_REFRESH_SECRET = "test-jwt-refresh-secret"

STORAGE_BACKEND = "memory"
DB_CONFIG: dict = {}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
