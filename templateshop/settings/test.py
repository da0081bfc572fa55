from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
EMAIL_FAIL_SILENTLY = False
ORDERS_ADMIN_EMAILS = 'ops@templateshop.test'

RAZORPAY_BASE_URL = 'https://razorpay.test/v1'
RAZORPAY_KEY_ID = 'rzp_test_key'
RAZORPAY_KEY_SECRET = 'test-key-secret'
RAZORPAY_WEBHOOK_SECRET = 'test-webhook-secret'
EXCHANGE_RATE_API_URL = ''

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
