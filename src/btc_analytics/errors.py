"""
errors.py

Ошибки пайплайна. Каждая ошибка может нести контекст: этап (stage),
актив (asset) и дату, на которой сломались данные.
"""


class AnalysisError(Exception):
    """Базовая ошибка анализа."""

    def __init__(self, message, stage=None, asset=None, date=None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.asset = asset
        self.date = date

    def __str__(self):
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.asset:
            context.append(f"asset={self.asset}")
        if self.date is not None:
            context.append(f"date={self.date}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class FetchError(AnalysisError):
    """Внешний источник недоступен или вернул некорректные данные."""


class DataError(AnalysisError):
    """Нарушен инвариант формы данных."""


class ConfigError(AnalysisError):
    """Несогласованные параметры от вызывающего кода."""
