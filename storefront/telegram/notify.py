import logging
from datetime import datetime

import requests
from sqlalchemy.orm import Session

from storefront import config
from storefront.db import SessionLocal
from storefront.models.subscriber import Subscriber

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pending": "Новый",
    "confirmed": "Подтверждён",
    "processing": "Собирается",
    "shipped": "Отправлен",
    "delivered": "Доставлен",
    "cancelled": "Отменён",
}


class TelegramNotifier:
    def __init__(self, token: str):
        self.token = token
        self.api_url = f"https://api.telegram.org/bot{self.token}/sendMessage"

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def send(self, message: str):
        """Отправить сообщение всем подписчикам в Telegram"""
        if not self.enabled:
            return
        db: Session = SessionLocal()
        try:
            subscribers = db.query(Subscriber).all()
            for sub in subscribers:
                try:
                    requests.post(self.api_url, data={
                        'chat_id': sub.chat_id,
                        'text': message,
                        'parse_mode': 'HTML'
                    }, timeout=10)
                except requests.RequestException:
                    logger.warning("Ошибка при отправке %s", sub.chat_id, exc_info=True)
        finally:
            db.close()

    def format_items(self, items):
        """Форматирование списка товаров"""
        lines = []
        for item in items:
            subtotal = item["quantity"] * item["price"]
            lines.append(f"• {item['product_name']} × {item['quantity']} шт. = {subtotal:.2f}")
        return "\n".join(lines)

    def order_created_message(self, order: dict) -> str:
        date_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        address = order.get("shipping_address") or {}
        msg = [
            f"🆕 <b>Новый заказ {order['order_number']}</b>",
            f"📅 {date_str}",
            f"📍 Самовывоз: {address.get('city', '—')}, {address.get('pickup_location', '—')}",
            f"💳 Оплата: {order['payment_method']}",
        ]
        if order.get("notes"):
            msg.append(f"💬 Комментарий: {order['notes']}")
        msg.append("\n📦 Состав заказа:\n" + self.format_items(order.get("items", [])))
        if order.get("discount_amount"):
            msg.append(f"🏷 Скидка: {order['discount_amount']:.2f}")
        msg.append(f"\n💰 Итого: {order['total_amount']:.2f}")
        return "\n".join(msg)

    def status_changed_message(self, order: dict, old_status: str) -> str:
        new_label = STATUS_LABELS.get(order["status"], order["status"])
        old_label = STATUS_LABELS.get(old_status, old_status)
        msg = [
            f"⚡ <b>Заказ {order['order_number']}</b>",
            f"📌 Статус: {old_label} → {new_label}",
        ]
        if order.get("tracking_number"):
            msg.append(f"🚚 Трек-номер: {order['tracking_number']}")
        msg.append("\n📦 Состав заказа:\n" + self.format_items(order.get("items", [])))
        return "\n".join(msg)

    def notify_order_created(self, order: dict):
        """Уведомление о новом заказе"""
        self.send(self.order_created_message(order))

    def notify_order_status_changed(self, order: dict, old_status: str):
        """Уведомление при изменении статуса заказа"""
        self.send(self.status_changed_message(order, old_status))


# глобальный экземпляр
notifier = TelegramNotifier(
    token=config.TELEGRAM_TOKEN
)
