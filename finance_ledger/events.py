import pika
import json
import os
import logging
from decimal import Decimal
from typing import Optional
from datetime import date, datetime

logger = logging.getLogger("finance-ledger")

# Sin URL no se publica nada (desarrollo local, tests)
RABBITMQ_URL = os.getenv("RABBITMQ_URL")
EXCHANGE_NAME = os.getenv("EVENTS_EXCHANGE", "finance_events")

class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return str(obj)

def transaction_payload(transaction) -> dict:
    """Datos mínimos de una transacción para los consumidores del evento."""
    return {
        "id": transaction.id,
        "workspace_id": transaction.workspace_id,
        "account_id": transaction.account_id,
        "amount": transaction.amount,
        "transaction_type": transaction.transaction_type,
        "date": transaction.date,
    }

def publish_event(routing_key: str, data: dict, url: Optional[str] = None):
    """
    Publica un evento en el bus de mensajes para notificar a otros servicios.
    Se llama después del commit; una falla aquí se registra pero no revierte nada.
    """
    url = url or RABBITMQ_URL
    if not url:
        logger.debug(f"Evento {routing_key} no publicado: RABBITMQ_URL no configurado")
        return False
    try:
        connection = pika.BlockingConnection(pika.URLParameters(url))
        channel = connection.channel()
        channel.exchange_declare(exchange=EXCHANGE_NAME, exchange_type='topic', durable=True)

        message_body = json.dumps(data, cls=CustomJSONEncoder)

        channel.basic_publish(
            exchange=EXCHANGE_NAME,
            routing_key=routing_key,
            body=message_body,
            properties=pika.BasicProperties(delivery_mode=2, content_type='application/json')
        )
        connection.close()
        logger.info(f"📢 Evento publicado: {routing_key}")
        return True
    except Exception as e:
        logger.error(f"❌ Error publicando evento {routing_key}: {e}")
        return False
