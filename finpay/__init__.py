"""FinPay Dashboard data layer: entities, access context and HTTP bootstrap."""
