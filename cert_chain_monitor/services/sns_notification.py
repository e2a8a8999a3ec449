"""
SNS通知服务
"""
import os
import logging
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import CheckResult, ServiceState
from .report_formatter import ReportFormatter

# SNS 主题长度限制
_MAX_SUBJECT_LENGTH = 100


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务实现"""

    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None,
                 notify_on_ok: bool = False):
        """
        初始化SNS通知服务

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
            notify_on_ok: 状态为OK时是否也发送通知
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.notify_on_ok = notify_on_ok
        self.formatter = ReportFormatter()

        # 自动检测区域
        if region_name:
            self.region_name = region_name
        elif self.topic_arn and 'arn:aws:sns:' in self.topic_arn:
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        try:
            self.sns_client = boto3.client('sns', region_name=self.region_name)
            self.logger.debug(f"SNS客户端初始化成功，区域: {self.region_name}")
        except (BotoCoreError, ClientError) as e:
            self.logger.error(f"初始化SNS客户端失败: {str(e)}")

    def send_check_result(self, result: CheckResult, source: str) -> bool:
        """
        发送检查结果通知

        Args:
            result: 检查结果
            source: 证书链来源描述

        Returns:
            bool: 发送是否成功（无需发送时也返回True）
        """
        if result.state is ServiceState.OK and not self.notify_on_ok:
            self.logger.debug("证书链状态正常，跳过通知发送")
            return True

        if not self._validate_configuration():
            return False

        subject = self._format_subject(result, source)
        message = self.format_notification_content(result, source)

        return self._publish(subject, message)

    def _publish(self, subject: str, message: str) -> bool:
        """
        发布SNS消息（不重试）

        Args:
            subject: 消息主题
            message: 消息内容

        Returns:
            bool: 发送是否成功
        """
        try:
            response = self.sns_client.publish(
                TopicArn=self.topic_arn,
                Subject=subject,
                Message=message
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
            return False
        except BotoCoreError as e:
            self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
            return False

        self.logger.info(f"SNS通知发送成功，MessageId: {response.get('MessageId')}")
        return True

    def format_notification_content(self, result: CheckResult, source: str) -> str:
        """
        格式化通知内容

        Args:
            result: 检查结果
            source: 证书链来源描述

        Returns:
            str: 格式化的通知内容
        """
        lines = [
            "证书链检查报告",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S %Z')}",
            f"检查目标: {source}",
            f"状态: {result.state.label}",
            "",
            self.formatter.render(result),
            "此消息由证书链监控插件自动发送。"
        ]
        return "\n".join(lines)

    def _format_subject(self, result: CheckResult, source: str) -> str:
        """
        格式化邮件主题

        Args:
            result: 检查结果
            source: 证书链来源描述

        Returns:
            str: 邮件主题（截断到SNS长度限制）
        """
        subject = f"[{result.state.label}] 证书链检查: {source}"
        if len(subject) > _MAX_SUBJECT_LENGTH:
            subject = subject[:_MAX_SUBJECT_LENGTH - 3] + "..."
        return subject

    def _validate_configuration(self) -> bool:
        """
        验证配置是否正确

        Returns:
            bool: 配置是否有效
        """
        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        return True
