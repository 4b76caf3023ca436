"""Pacote do relay Linear -> Discord.

Este pacote contém:
- constants: variáveis de ambiente, Settings e mapas de emoji/cor
- utils: truncamento, emojis e helpers de data
- models: registros do Linear e o envelope de webhook (união fechada)
- formatters: conversão de eventos de webhook em embeds do Discord
- linear: cliente GraphQL do Linear com paginação por cursor
- reports: resumo diário e relatório de tarefas por responsável
- services: envio de payloads ao webhook do Discord
- controller: criação do Flask app e endpoints
"""
