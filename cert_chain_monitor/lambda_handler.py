"""
AWS Lambda函数入口点
"""
from datetime import datetime, timezone
from typing import Any, Dict

from .config import PluginConfig
from .monitor import CertChainMonitor
from .services.logger import LoggerService


def build_config(event: Dict[str, Any]) -> PluginConfig:
    """
    构建插件配置：环境变量为基础，事件中的同名键（小写）覆盖

    Args:
        event: Lambda 事件

    Returns:
        PluginConfig: 插件配置
    """
    config = PluginConfig.from_env()
    overrides = {key: value for key, value in (event or {}).items() if key in PluginConfig.__dataclass_fields__}
    if not overrides:
        return config

    merged = config.to_dict()
    merged.update(overrides)
    return PluginConfig.from_mapping(merged)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可包含配置覆盖项
        context: Lambda运行时上下文

    Returns:
        dict: 检查状态和统计信息
    """
    try:
        config = build_config(event)
    except ValueError as e:
        LoggerService().log_error("解析Lambda配置", e)
        return {
            'statusCode': 400,
            'body': {
                'message': 'Invalid certificate check configuration',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    logger_service = LoggerService(log_level=config.log_level)
    monitor = CertChainMonitor(config, logger_service=logger_service)
    result = monitor.run()

    body = {
        'state': result.state.label,
        'exit_code': result.exit_code,
        'service_output': result.service_output,
        'errors': list(result.errors),
        'output': monitor.render(result),
        'execution': logger_service.get_execution_summary(),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if result.evaluation is not None:
        summary = result.evaluation.summary
        body['summary'] = {
            'total_certificates': summary.total,
            'expired_certificates': summary.expired_count,
            'critical_certificates': summary.critical_count,
            'warning_certificates': summary.warning_count,
            'ok_certificates': summary.ok_count,
            'hostname_check': result.evaluation.hostname.outcome.value,
        }

    return {
        'statusCode': 200,
        'body': body
    }
