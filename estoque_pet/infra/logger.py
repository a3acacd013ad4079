"""
Sistema de logging para transações do razão de estoque.

Este módulo configura e fornece loggers para registrar todas as operações
críticas do sistema, incluindo movimentações, auditorias de consistência e
operações no banco de dados.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("ESTOQUE_PET_LOGGING", "0").lower() in {"1", "true", "sim"}

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é aberto na primeira mensagem (``delay=True``), então
    importar o módulo não cria arquivos.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers anteriores (reconfiguração)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

# Diretório base para logs (na pasta do pacote, ou ESTOQUE_PET_LOG_DIR)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("ESTOQUE_PET_LOG_DIR") or (BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "movimentacoes": LOGS_DIR / "movimentacoes.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
    "auditoria": LOGS_DIR / "auditoria.log",
}

# Loggers específicos para cada operação
transaction_logger = setup_logger('estoque_pet.transactions', str(LOG_FILES["transactions"]))
movimentacao_logger = setup_logger('estoque_pet.movimentacoes', str(LOG_FILES["movimentacoes"]))
database_logger = setup_logger('estoque_pet.database', str(LOG_FILES["database"]))
system_logger = setup_logger('estoque_pet.system', str(LOG_FILES["system"]))
auditoria_logger = setup_logger('estoque_pet.auditoria', str(LOG_FILES["auditoria"]))

def _ativo() -> bool:
    return ENABLE_LOGGING

def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (ENTRADA, SAIDA, AJUSTE, contagem...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _ativo():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_movimentacao(action: str, tipo: str, produto_id: str, delta: Optional[float] = None, **kwargs) -> None:
    """
    Log específico para movimentações do razão.

    Args:
        action: Ação realizada (commit, rejected, batch_prepare)
        tipo: ENTRADA | SAIDA | AJUSTE
        produto_id: Identificador do produto
        delta: Variação aplicada ao saldo (opcional)
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {
        "action": action,
        "tipo": tipo,
        "produto_id": produto_id,
        "delta": delta,
        **kwargs
    }
    movimentacao_logger.info(f"{tipo}_{action.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not _ativo():
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação de planilhas).
    """
    if not _ativo():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def log_auditoria(event: str, produto_id: Optional[str] = None, level: str = "warning", **kwargs) -> None:
    """
    Log da auditoria de consistência (divergências, bloqueios, reconciliações).

    Divergências sempre vão para o log, mesmo com ENABLE_LOGGING desligado:
    um IntegrityError nunca deve passar em silêncio.
    """
    log_data = {"event": event, "produto_id": produto_id, **kwargs}
    if not _ativo() and level.lower() not in {"warning", "error", "critical"}:
        return
    log_method = getattr(auditoria_logger, level.lower(), auditoria_logger.warning)
    log_method(f"AUDIT_{event.upper()}: {log_data}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, movimentacoes, database, system, auditoria)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
