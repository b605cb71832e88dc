"""FinMemory: backend da aplicação de finanças pessoais e do mapa de preços."""

__version__ = "0.1.0"
