from __future__ import annotations

from decimal import Decimal


class CardapioError(Exception):
    """Base dos erros de domínio. `code` é estável e vai para a resposta HTTP."""

    code = "error"
    default_message = "Erro inesperado"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(CardapioError):
    code = "validation_error"
    default_message = "Dados inválidos"


class NotFoundError(CardapioError):
    code = "not_found"
    default_message = "Registro não encontrado"


class UnauthorizedError(CardapioError):
    code = "unauthorized"
    default_message = "Unauthorized"


class TransientDeliveryError(CardapioError):
    code = "delivery_failed"
    default_message = "Não foi possível enviar a mensagem"


class PersistenceError(CardapioError):
    code = "persistence_failed"
    default_message = "Falha ao salvar pedido"


# Pedido / envio

class EmptyOrder(ValidationError):
    code = "empty_order"
    default_message = "Carrinho vazio. Adicione itens antes de enviar o pedido."


class MissingCustomerName(ValidationError):
    code = "missing_customer_name"
    default_message = "Por favor, informe seu nome ou número da mesa."


class MissingDeliveryAddress(ValidationError):
    code = "missing_delivery_address"
    default_message = "Por favor, informe o endereço de entrega."


class ChannelNotConfigured(ValidationError):
    code = "channel_not_configured"
    default_message = "Número do restaurante não configurado. Entre em contato com o estabelecimento."


class ChannelBlocked(TransientDeliveryError):
    code = "channel_blocked"
    default_message = "Não foi possível abrir o WhatsApp. Permita pop-ups ou abra o link manualmente."


class NotificationDeliveryError(TransientDeliveryError):
    code = "notification_failed"
    default_message = "Erro ao enviar WhatsApp"


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Pedido não encontrado"


class RestaurantNotFound(NotFoundError):
    code = "restaurant_not_found"
    default_message = "Restaurante não encontrado"


class ReservationNotFound(NotFoundError):
    code = "reservation_not_found"
    default_message = "Reserva não encontrada"


# Cupons

class CouponNotFound(NotFoundError):
    code = "coupon_not_found"
    default_message = "Cupom inválido ou expirado"


class CouponRejected(ValidationError):
    code = "coupon_rejected"


class InvalidCouponCode(CouponRejected):
    code = "coupon_code_required"
    default_message = "Digite um código de cupom"


class InvalidCouponType(CouponRejected):
    code = "coupon_type_invalid"
    default_message = "Tipo de cupom inválido"


class CouponNotYetValid(CouponRejected):
    code = "coupon_not_yet_valid"
    default_message = "Este cupom ainda não está disponível"


class CouponExpired(CouponRejected):
    code = "coupon_expired"
    default_message = "Este cupom já expirou"


class CouponUsageLimitReached(CouponRejected):
    code = "coupon_usage_limit_reached"
    default_message = "Este cupom atingiu o limite de usos"


class CouponBelowMinimum(CouponRejected):
    code = "coupon_below_minimum"

    def __init__(self, min_order: Decimal) -> None:
        self.min_order = min_order
        super().__init__(f"Pedido mínimo de R$ {min_order:.2f} para usar este cupom")


# Webhook

class MalformedEvent(ValidationError):
    code = "malformed_event"
    default_message = "Invalid payload"


class WebhookNotConfigured(CardapioError):
    code = "webhook_not_configured"
    default_message = "ASAAS_API_KEY not configured"
