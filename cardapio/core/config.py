import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cardapio.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# Asaas: a mesma chave da API é enviada pelo Asaas no header do webhook
ASAAS_API_KEY = os.getenv("ASAAS_API_KEY", "")
ASAAS_WEBHOOK_TOKEN_HEADER = os.getenv("ASAAS_WEBHOOK_TOKEN_HEADER", "asaas-access-token")

# WhatsApp (links wa.me / web.whatsapp.com)
RESTAURANT_WHATS_NUMBER = os.getenv("RESTAURANT_WHATS_NUMBER", "").strip()
WHATSAPP_MOBILE_DOMAIN = os.getenv("WHATSAPP_MOBILE_DOMAIN", "wa.me").strip()
WHATSAPP_WEB_DOMAIN = os.getenv("WHATSAPP_WEB_DOMAIN", "web.whatsapp.com").strip()

# Persistência best-effort do pedido antes do envio
ORDER_SAVE_TO_DB = os.getenv("ORDER_SAVE_TO_DB", "0").strip().lower() in _TRUTHY
ORDER_SAVE_ENDPOINT = os.getenv("ORDER_SAVE_ENDPOINT", "").strip()
ORDER_PERSIST_TIMEOUT_SECONDS = float(os.getenv("ORDER_PERSIST_TIMEOUT_SECONDS", "10"))

# WhatsApp Cloud API (notificações de status)
META_API_VERSION = os.getenv("META_API_VERSION", "v19.0")
WHATSAPP_CLOUD_TIMEOUT_SECONDS = float(os.getenv("WHATSAPP_CLOUD_TIMEOUT_SECONDS", "20"))

PUBLIC_TRACKING_BASE_URL = os.getenv("PUBLIC_TRACKING_BASE_URL", "http://localhost:5173").rstrip("/")
