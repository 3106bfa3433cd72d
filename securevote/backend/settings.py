from pathlib import Path
import os
import dj_database_url

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# --- 1. SECRET KEY ---
SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-fallback-key-for-dev')

# --- 2. DEBUG MODE ---
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'

# --- 3. HOSTS & CORS ---
ALLOWED_HOSTS = []
RENDER_EXTERNAL_HOSTNAME = os.environ.get('RENDER_EXTERNAL_HOSTNAME')
if RENDER_EXTERNAL_HOSTNAME:
    ALLOWED_HOSTS.append(RENDER_EXTERNAL_HOSTNAME)

if DEBUG:
    ALLOWED_HOSTS.extend(['localhost', '127.0.0.1', 'testserver', '*'])


FRONTEND_URL = os.environ.get('FRONTEND_URL')
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]
if FRONTEND_URL:
    CORS_ALLOWED_ORIGINS.append(FRONTEND_URL)

CSRF_TRUSTED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]
if FRONTEND_URL:
    CSRF_TRUSTED_ORIGINS.append(FRONTEND_URL)

if RENDER_EXTERNAL_HOSTNAME:
    CSRF_TRUSTED_ORIGINS.append(f"https://{RENDER_EXTERNAL_HOSTNAME}")


# Application definition
INSTALLED_APPS = [
    'daphne',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'django_apscheduler',
    'elections_api',
    'corsheaders',
    'channels',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# --- ASGI CONFIG ---
WSGI_APPLICATION = 'backend.wsgi.application'
ASGI_APPLICATION = 'backend.asgi.application'


# --- 4. DATABASE ---
# Vote casting must never block indefinitely on a locked row; the same bound
# is applied to the driver so a stalled statement surfaces as an error.
VOTE_CAST_TIMEOUT_SECONDS = int(os.environ.get('VOTE_CAST_TIMEOUT_SECONDS', '10'))

DATABASES = {
    'default': dj_database_url.config(
        default=f'sqlite:///{BASE_DIR / "db.sqlite3"}',
        conn_max_age=600
    )
}
if DATABASES['default']['ENGINE'] == 'django.db.backends.sqlite3':
    DATABASES['default'].setdefault('OPTIONS', {})['timeout'] = VOTE_CAST_TIMEOUT_SECONDS
elif DATABASES['default']['ENGINE'].startswith('django.db.backends.postgresql'):
    DATABASES['default'].setdefault('OPTIONS', {})['options'] = (
        f'-c statement_timeout={VOTE_CAST_TIMEOUT_SECONDS * 1000}'
    )


# --- 5. CHANNEL LAYERS ---
if DEBUG:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer"
        }
    }
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {
                "hosts": [os.environ.get('REDIS_URL')],
            },
        },
    }


# --- 6. REST FRAMEWORK ---
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
}


AUTH_PASSWORD_VALIDATORS = [
    { 'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator', },
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# --- 7. STATIC FILES ---
STATIC_URL = 'static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# --- 8. SYNTHETIC LEDGER ---
# Block numbers and confirmations are audit counters, not consensus output.
LEDGER_GENESIS_BLOCK = int(os.environ.get('LEDGER_GENESIS_BLOCK', '15847000'))
LEDGER_GENESIS_AT = os.environ.get('LEDGER_GENESIS_AT', '2024-01-01T00:00:00+00:00')
LEDGER_BLOCK_INTERVAL_SECONDS = int(os.environ.get('LEDGER_BLOCK_INTERVAL_SECONDS', '6'))
LEDGER_CONFIRMATION_SEED = int(os.environ.get('LEDGER_CONFIRMATION_SEED', '1'))


# --- 9. NOTIFICATIONS ---
NOTIFICATION_SWEEP_INTERVAL_MINUTES = int(os.environ.get('NOTIFICATION_SWEEP_INTERVAL_MINUTES', '5'))
NOTIFICATION_REMINDER_COOLDOWN_HOURS = 3
NOTIFICATION_TURNOUT_COOLDOWN_HOURS = 6
NOTIFICATION_LOW_TURNOUT_THRESHOLD = 0.30
NOTIFICATION_LOW_TURNOUT_WINDOW_HOURS = 12
NOTIFICATION_SMS_ENABLED = os.environ.get('NOTIFICATION_SMS_ENABLED', 'False').lower() == 'true'
NOTIFICATION_PROVIDER_TIMEOUT_SECONDS = int(os.environ.get('NOTIFICATION_PROVIDER_TIMEOUT_SECONDS', '10'))

RESEND_API_KEY = os.environ.get('RESEND_API_KEY')
BRIQ_API_KEY = os.environ.get('BRIQ_API_KEY')
NOTIFICATION_FROM_EMAIL = os.environ.get('NOTIFICATION_FROM_EMAIL', 'SecureVote <onboarding@resend.dev>')
NOTIFICATION_SMS_SENDER_ID = os.environ.get('NOTIFICATION_SMS_SENDER_ID', 'BlockVote')

# Outside DEBUG a missing API key is a delivery failure, never a silent no-op.
if DEBUG and not RESEND_API_KEY:
    _default_email_backend = 'django.core.mail.backends.console.EmailBackend'
else:
    _default_email_backend = 'elections_api.mail.ResendEmailBackend'
EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', _default_email_backend)
DEFAULT_FROM_EMAIL = NOTIFICATION_FROM_EMAIL

if DEBUG and not BRIQ_API_KEY:
    _default_sms_provider = 'elections_api.providers.LocmemSmsProvider'
else:
    _default_sms_provider = 'elections_api.providers.BriqSmsProvider'
NOTIFICATION_SMS_PROVIDER = os.environ.get('NOTIFICATION_SMS_PROVIDER', _default_sms_provider)

# Background jobs (notification sweep, status transitions, confirmations).
SCHEDULER_AUTOSTART = os.environ.get('SCHEDULER_AUTOSTART', 'False').lower() == 'true'
APSCHEDULER_DATETIME_FORMAT = 'N j, Y, f:s a'
APSCHEDULER_RUN_NOW_TIMEOUT = 25


# --- 10. LOGGING ---
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'loggers': {
        'elections_api': {
            'handlers': ['console'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
        'apscheduler': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}
