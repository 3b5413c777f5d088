"""
Integración one-way: BigQuery -> PostgreSQL.

Este paquete está diseñado para ejecutarse como job (scheduler / cron),
no como parte del request/response del API.

Objetivos de diseño:
- Autenticación OAuth2 JWT-bearer con service account, sin SDKs de Google.
- Incremental: se apoya en el cursor persistido por (tenant, modelo).
- Página acotada por corrida: backlogs grandes se drenan en varias corridas.
"""
