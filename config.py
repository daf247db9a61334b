# -*- coding: utf-8 -*-
"""
Configuracoes do Cert Simulados
"""

EXAM = {
    "nota_minima_padrao": 70,
    "janela_tentativas_dias": 7,
    "tick_segundos": 1.0,
    "duracao_padrao_minutos": 60,
}

# Tentativas de simulado permitidas por janela movel de 7 dias.
PLAN_WEEKLY_ATTEMPTS = {
    "free": {"nome": "Free", "tentativas_semana": 3},
    "trial": {"nome": "Trial", "tentativas_semana": 5},
    "premium_30": {"nome": "Premium", "tentativas_semana": 30},
}

DEFAULT_PLAN = "free"

SRS = {
    "qualidade_min": 0,
    "qualidade_max": 5,
    "limiar_falha": 3,
    "limiar_boa_lembranca": 4,
    "acertos_seguidos_para_revisao": 2,
    "fator_inicial": 2.5,
    "fator_minimo": 1.3,
    "penalidade_falha": 0.2,
    "intervalo_minimo_dias": 1,
    "intervalo_graduacao_dias": 21,
    "intervalo_maximo_dias": 365,
}

NIVEIS_DIFICULDADE = ["Fácil", "Médio", "Difícil", "Avançado"]

DIFICULDADE_PADRAO = "Médio"


def get_plan_info(plan_code: str):
    """Retorna a configuracao do plano, com fallback para o plano Free."""
    code = str(plan_code or "").strip().lower()
    return PLAN_WEEKLY_ATTEMPTS.get(code) or PLAN_WEEKLY_ATTEMPTS[DEFAULT_PLAN]
