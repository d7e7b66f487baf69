"""
路径过滤器

根据排除前缀列表判断相对路径是否应被排除。纯函数，无副作用。
"""

from typing import Iterable

from ..config.schema import ExcludeMatchMode


def _normalize(path: str) -> str:
    return path.replace('\\', '/')


def should_exclude(
    path: str,
    exclusions: Iterable[str],
    mode: ExcludeMatchMode = ExcludeMatchMode.PREFIX,
) -> bool:
    """检查路径是否被排除

    PREFIX 模式下做字面前缀匹配，"storage" 会同时排除 "storage/app.log"
    和 "storagex/file"。SEGMENT 模式下只匹配完整的路径段。

    Args:
        path: 相对于项目根目录的路径
        exclusions: 排除前缀列表
        mode: 匹配方式

    Returns:
        bool: 是否被排除
    """
    path = _normalize(path)

    for excluded in exclusions:
        excluded = _normalize(excluded)
        if not excluded:
            continue

        if mode == ExcludeMatchMode.SEGMENT:
            prefix = excluded.rstrip('/')
            if path == prefix or path.startswith(prefix + '/'):
                return True
        elif path.startswith(excluded):
            return True

    return False


class PathFilter:
    """绑定了排除列表和匹配方式的过滤器"""

    def __init__(self, exclusions: Iterable[str], mode: ExcludeMatchMode = ExcludeMatchMode.PREFIX):
        self.exclusions = list(exclusions)
        self.mode = mode

    def __call__(self, path: str) -> bool:
        return should_exclude(path, self.exclusions, self.mode)
