# Define os modelos do banco de dados para a camada de infraestrutura (autenticação e contas).

from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager

# ====================================================================
# GERENCIADOR DE USUÁRIOS PERSONALIZADO (Para usar email como login)
# ====================================================================

class CustomUserManager(BaseUserManager):
    """
    Gerenciador de modelos de usuário onde o email é o identificador único
    para autenticação, em vez dos nomes de usuário.
    """
    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('O e-mail deve ser definido')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Cria e salva um Superusuário com o e-mail e senha fornecidos.
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


# ====================================================================
# MODELO DE USUÁRIO
# ====================================================================

class Usuario(AbstractUser):
    """
    Modelo de Usuário Personalizado que utiliza o campo 'email' como identificador
    principal para login, em vez de 'username'.
    """
    TIPO_LOCAL = 'local'
    TIPO_GOOGLE = 'google'
    TIPO_CONTA_CHOICES = [
        (TIPO_LOCAL, 'E-mail e senha'),
        (TIPO_GOOGLE, 'Google'),
    ]

    # Remove o campo username padrão
    username = None

    # Define o email como único e obrigatório
    email = models.EmailField('Endereço de E-mail', unique=True)

    # Campos adicionais do perfil
    telefone = models.CharField(max_length=15, blank=True, null=True)
    cpf = models.CharField('CPF', max_length=14, unique=True, blank=True, null=True)
    tipo_conta = models.CharField(max_length=10, choices=TIPO_CONTA_CHOICES, default=TIPO_LOCAL)

    # Campos necessários para login/autenticação
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    # Utiliza o gerenciador de usuários personalizado
    objects = CustomUserManager()

    class Meta:
        verbose_name = 'Usuário'
        verbose_name_plural = 'Usuários'
        db_table = 'infra_usuario' # Alterado o nome da tabela para especificidade

    def __str__(self):
        return self.email


class PerfilGoogle(models.Model):
    """Perfil de quem entra com Google; substitui os dados de perfil do Usuario."""
    usuario = models.OneToOneField(Usuario, on_delete=models.CASCADE, related_name='perfil_google')
    google_id = models.CharField(max_length=64, unique=True)
    nome_completo = models.CharField(max_length=255, blank=True)
    cpf = models.CharField('CPF', max_length=14, blank=True, null=True)
    telefone = models.CharField(max_length=15, blank=True, null=True)
    foto_url = models.URLField(max_length=500, blank=True, null=True)

    class Meta:
        verbose_name = 'Perfil Google'
        verbose_name_plural = 'Perfis Google'
        db_table = 'infra_perfil_google'

    def __str__(self):
        return f"{self.nome_completo or self.usuario.email} (Google)"
