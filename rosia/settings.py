"""
Configurações para o projeto Rosia (API da loja).
"""

from decimal import Decimal
from decouple import config, Csv
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# ====================================================================
# CONFIGURAÇÕES BÁSICAS
# ====================================================================

# A SECRET_KEY deve ser lida de uma variável de ambiente por segurança.
SECRET_KEY = config('SECRET_KEY', default='django-insecure-default-key-for-development')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=False, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

# Define o nosso modelo de usuário personalizado como o modelo de autenticação padrão.
AUTH_USER_MODEL = 'infrastructure.Usuario'


# ====================================================================
# APLICAÇÕES INSTALADAS
# ====================================================================

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.staticfiles',

    # Aplicações de Terceiros (Primeiro)
    'rest_framework',
    'drf_spectacular',
    'rest_framework_simplejwt',
    'rest_framework_simplejwt.token_blacklist',

    # Nossas Aplicações (Nessa ordem para referências de Models)
    'rosia.core.apps.CoreConfig', # Entidades e Lógica Pura
    'rosia.infrastructure.apps.InfrastructureConfig', # Usuários, Repositórios e Gateways
    'rosia.presentation.apps.PresentationConfig', # API REST
    'rosia.catalog.apps.CatalogConfig', # Produtos e Variantes
    'rosia.carrinho.apps.CarrinhoConfig', # Carrinho de Compras
    'rosia.vendas.apps.VendasConfig', # Pedidos
    'rosia.envios.apps.EnviosConfig', # Etiquetas (Melhor Envio)
]


# ====================================================================
# MIDDLEWARE E TEMPLATES
# ====================================================================

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'rosia.urls'

# Usado apenas pelas páginas de documentação (Swagger/Redoc)
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
            ],
        },
    },
]

WSGI_APPLICATION = 'rosia.wsgi.application'


# ====================================================================
# CONFIGURAÇÃO DO BANCO DE DADOS
# ====================================================================

DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    # PostgreSQL (psycopg2)
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default='rosia'),
            'USER': config('DB_USER', default='rosia'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default='5432'),
        }
    }


# ====================================================================
# AUTENTICAÇÃO E VALIDAÇÃO DE SENHA
# ====================================================================

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# ====================================================================
# INTERNACIONALIZAÇÃO
# ====================================================================

LANGUAGE_CODE = 'pt-br'

TIME_ZONE = 'America/Sao_Paulo'

USE_I18N = True

USE_TZ = True


# ====================================================================
# ARQUIVOS ESTÁTICOS
# ====================================================================

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ====================================================================
# CONFIGURAÇÕES DO DJANGO REST FRAMEWORK (DRF) E DOCS (SPECTACULAR)
# ====================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'API da Rosia',
    'DESCRIPTION': 'Carrinho, checkout, pagamentos (Mercado Pago) e envios (Melhor Envio).',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

REST_FRAMEWORK = {
    # JWT com a conta do usuário resolvida na autenticação.
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rosia.presentation.autenticacao.ContaJWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'rosia.presentation.excecoes.tratar_excecao',
}

SIMPLE_JWT = {
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': True,
    'USER_ID_FIELD': 'id',
}


# ====================================================================
# CONFIGURAÇÕES DE SERVIÇOS EXTERNOS (Pagamento e Frete)
# ====================================================================

# URL pública desta API (usada na notification_url das cobranças)
BACKEND_URL = config('BACKEND_URL', default='http://localhost:8000')

# Mercado Pago (sem access token o gateway roda em modo mock)
MERCADO_PAGO_ACCESS_TOKEN = config('MERCADO_PAGO_ACCESS_TOKEN', default='')
MERCADO_PAGO_PUBLIC_KEY = config('MERCADO_PAGO_PUBLIC_KEY', default='')
MERCADO_PAGO_API_URL = config('MERCADO_PAGO_API_URL', default='https://api.mercadopago.com')
MP_WEBHOOK_SECRET = config('MP_WEBHOOK_SECRET', default='')
PAYMENT_WEBHOOK_SECRET = config('PAYMENT_WEBHOOK_SECRET', default='')

# Retentativas do webhook (consulta da cobrança e busca do pedido)
WEBHOOK_LOOKUP_TENTATIVAS = config('WEBHOOK_LOOKUP_TENTATIVAS', default=3, cast=int)
WEBHOOK_LOOKUP_INTERVALO = config('WEBHOOK_LOOKUP_INTERVALO', default=1.0, cast=float)

# Melhor Envio
MELHOR_ENVIO_API_URL = config('MELHOR_ENVIO_API_URL', default='https://sandbox.melhorenvio.com.br/api/v2')
MELHOR_ENVIO_TOKEN = config('MELHOR_ENVIO_TOKEN', default='')
MELHOR_ENVIO_USER_AGENT = config('MELHOR_ENVIO_USER_AGENT', default='Rosia (contato@rosia.com.br)')

# Polling do rastreio após a compra da etiqueta
ENVIO_RETRY_TENTATIVAS = config('ENVIO_RETRY_TENTATIVAS', default=3, cast=int)
ENVIO_RETRY_INTERVALO = config('ENVIO_RETRY_INTERVALO', default=5.0, cast=float)

# Frete: base + adicional por linha extra do carrinho; grátis a partir do limite
FRETE_BASE = config('FRETE_BASE', default='15.00', cast=Decimal)
FRETE_POR_ITEM_EXTRA = config('FRETE_POR_ITEM_EXTRA', default='0.50', cast=Decimal)
FRETE_GRATIS_A_PARTIR_DE = config('FRETE_GRATIS_A_PARTIR_DE', default='100.00', cast=Decimal)


# ====================================================================
# CONFIGURAÇÕES DE LOGGING
# ====================================================================

LOG_LEVEL = config('LOG_LEVEL', default='INFO')
LOG_FILE = config('LOG_FILE', default='')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'level': LOG_LEVEL,
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': True,
        },
        'rosia': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

if LOG_FILE:
    LOGGING['handlers']['file'] = {
        'level': LOG_LEVEL,
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': LOG_FILE,
        'maxBytes': 1024 * 1024 * 5,  # 5 MB
        'backupCount': 5,
        'formatter': 'verbose',
    }
    for logger_config in LOGGING['loggers'].values():
        logger_config['handlers'].append('file')
