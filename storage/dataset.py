"""
Dataset Sink
只追加的输出数据集
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging

from models import NormalizedRecord


logger = logging.getLogger(__name__)


class BaseDatasetSink(ABC):
    """
    数据集抽象基类
    记录一旦写入不再修改
    """

    def __init__(self):
        self._count = 0

    @abstractmethod
    def _write(self, item: Dict[str, Any]) -> None:
        """写入一条记录"""
        pass

    def push(self, record: NormalizedRecord) -> None:
        """追加一条记录"""
        self._write(record.to_output())
        self._count += 1

    def close(self) -> None:
        """释放资源"""
        pass

    @property
    def count(self) -> int:
        return self._count

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class MemoryDatasetSink(BaseDatasetSink):
    """
    内存数据集
    适合测试和嵌入式调用
    """

    def __init__(self):
        super().__init__()
        self.items: List[Dict[str, Any]] = []

    def _write(self, item: Dict[str, Any]) -> None:
        self.items.append(item)


class JsonlDatasetSink(BaseDatasetSink):
    """
    JSON Lines 文件数据集
    每条记录一行，以追加模式写入
    """

    def __init__(self, path: Union[str, Path]):
        """
        初始化文件数据集

        Args:
            path: 输出文件路径，父目录不存在时自动创建
        """
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle: Optional[Any] = None

    def _write(self, item: Dict[str, Any]) -> None:
        if self._handle is None:
            self._handle = self.path.open("a", encoding="utf-8")
        self._handle.write(json.dumps(item, ensure_ascii=False) + "\n")
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.info(f"Wrote {self.count} record(s) to {self.path}")
