"""Доменная часть: номера, выбор, цена, FSM оформления."""
