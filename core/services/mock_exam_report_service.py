# -*- coding: utf-8 -*-
"""Agregacao de relatorio de simulados ja corrigidos."""

from __future__ import annotations

from typing import Dict, Iterable, List

from core.models import Simulado, SimuladoResult


class MockExamReportService:
    @staticmethod
    def summarize_results(results: Iterable[SimuladoResult]) -> Dict:
        tentativas = 0
        aprovacoes = 0
        soma_score = 0
        melhor_score = 0
        tempo_total_s = 0
        by_simulado: Dict[int, Dict[str, int]] = {}

        for result in results or []:
            tentativas += 1
            soma_score += int(result.score)
            melhor_score = max(melhor_score, int(result.score))
            tempo_total_s += int(max(0, result.time_spent))
            if result.passed_exam:
                aprovacoes += 1

            bucket = by_simulado.setdefault(
                result.simulado_id,
                {"tentativas": 0, "aprovacoes": 0, "melhor_score": 0},
            )
            bucket["tentativas"] += 1
            bucket["melhor_score"] = max(bucket["melhor_score"], int(result.score))
            if result.passed_exam:
                bucket["aprovacoes"] += 1

        return {
            "tentativas": tentativas,
            "aprovacoes": aprovacoes,
            "taxa_aprovacao": (aprovacoes / tentativas) * 100.0 if tentativas else 0.0,
            "score_medio": soma_score / tentativas if tentativas else 0.0,
            "melhor_score": melhor_score,
            "tempo_total_s": tempo_total_s,
            "tempo_medio_s": int(tempo_total_s / max(1, tentativas)),
            "by_simulado": by_simulado,
        }

    @staticmethod
    def question_breakdown(simulado: Simulado, result: SimuladoResult) -> List[Dict]:
        """Gabarito comentado; so deve ser montado depois da entrega."""
        linhas = []
        for questao in simulado.questoes:
            escolhida = result.answers.get(questao.id)
            correta = questao.correct_alternative_id()
            linhas.append(
                {
                    "questao_id": questao.id,
                    "enunciado": questao.enunciado,
                    "resposta": escolhida,
                    "correta": correta,
                    "acertou": escolhida is not None and escolhida == correta,
                    "respondida": escolhida is not None,
                    "explicacao": questao.explicacao or "",
                }
            )
        return linhas
