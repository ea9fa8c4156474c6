"""
WSGI config para o projeto Rosia.

Expõe o callable WSGI como a variável de módulo ``application``.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rosia.settings')

application = get_wsgi_application()
