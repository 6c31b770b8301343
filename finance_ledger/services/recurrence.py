from datetime import date
from dateutil.relativedelta import relativedelta
from ..models import Frequency

# Intervalo por frecuencia. relativedelta recorta al último día del mes
# destino: 31-ene + 1 mes = 29-feb (bisiesto) o 28-feb.
FREQUENCY_STEPS = {
    Frequency.WEEKLY.value: relativedelta(days=7),
    Frequency.BIWEEKLY.value: relativedelta(days=14),
    Frequency.MONTHLY.value: relativedelta(months=1),
    Frequency.QUARTERLY.value: relativedelta(months=3),
    Frequency.SEMI_ANNUALLY.value: relativedelta(months=6),
    Frequency.YEARLY.value: relativedelta(years=1),
}

DEFAULT_STEP = relativedelta(months=1)


def next_payment_date(current: date, frequency: str) -> date:
    """
    Calcula la próxima fecha de pago según la frecuencia.
    Frecuencias desconocidas avanzan un mes.
    """
    key = frequency.value if isinstance(frequency, Frequency) else frequency
    return current + FREQUENCY_STEPS.get(key, DEFAULT_STEP)
