from cardapio.models.restaurant import Restaurant
from cardapio.models.coupon import Coupon, CouponRedemption
from cardapio.models.order import Order
from cardapio.models.payment import OrderPayment, SubscriptionPayment
from cardapio.models.reservation import Reservation
