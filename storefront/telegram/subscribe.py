import logging
import time
import threading

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront import config
from storefront.db import SessionLocal
from storefront.models.subscriber import Subscriber

logger = logging.getLogger(__name__)

API_URL = f"https://api.telegram.org/bot{config.TELEGRAM_TOKEN}/"


def save_chat(chat_id: str, username: str | None) -> bool:
    """Сохраняем подписчика в БД. True, если добавлен новый."""
    db: Session = SessionLocal()
    try:
        exists = db.query(Subscriber).filter(Subscriber.chat_id == str(chat_id)).first()
        if exists:
            return False
        db.add(Subscriber(chat_id=str(chat_id), username=username))
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Ошибка сохранения подписчика %s", chat_id, exc_info=True)
        return False
    finally:
        db.close()


def get_updates(offset=None):
    """Получаем апдейты от Telegram"""
    url = API_URL + "getUpdates"
    params = {"timeout": 30, "offset": offset}
    return requests.get(url, params=params, timeout=40).json()


def handle_update(upd: dict) -> None:
    msg = upd.get("message", {})
    text = msg.get("text")
    chat = msg.get("chat", {})
    chat_id = chat.get("id")
    if chat_id is None:
        return

    if config.TELEGRAM_ADMIN_PASSWORD and text == config.TELEGRAM_ADMIN_PASSWORD:
        save_chat(chat_id, chat.get("username"))
        reply = "✅ Вы подписаны на уведомления о заказах!"
    else:
        reply = "Введите пароль для подписки."
    requests.post(API_URL + "sendMessage", data={"chat_id": chat_id, "text": reply}, timeout=10)


def polling_loop():
    """Цикл получения сообщений от пользователей"""
    last_update_id = None
    while True:
        try:
            updates = get_updates(last_update_id).get("result", [])
            for upd in updates:
                last_update_id = upd["update_id"] + 1
                handle_update(upd)
        except (requests.RequestException, ValueError):
            logger.warning("Ошибка polling", exc_info=True)
        time.sleep(2)


def start_polling() -> bool:
    """Запускаем polling в фоне (только если задан токен)"""
    if not config.TELEGRAM_TOKEN:
        logger.info("TELEGRAM_TOKEN не задан, polling не запускаем")
        return False
    threading.Thread(target=polling_loop, daemon=True).start()
    return True
