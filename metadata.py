# metadata.py - 站点元数据的模型、加载与校验

import os
import re
import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

import config


class SiteMetadataError(ValueError):
    """站点元数据无效或不完整时抛出。"""


# -------------------------------------------------------------------------
# 【字段类型】
# -------------------------------------------------------------------------
def _require_non_empty(value: str) -> str:
    # 只检查是否为空，不修改原值 (ID 由第三方服务解释)
    if not value.strip():
        raise ValueError('must not be empty')
    return value


def _require_flag(value: Any) -> Any:
    if not isinstance(value, str) or value not in ('1', '0'):
        raise ValueError("must be the string '1' (enable) or '0' (disable)")
    return value


NonEmptyStr = Annotated[str, AfterValidator(_require_non_empty)]
GiscusFlag = Annotated[Literal['1', '0'], BeforeValidator(_require_flag)]


class _Block(BaseModel):
    # 外部表示使用 camelCase 键 (与前端生成器一致)，Python 侧使用 snake_case
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='forbid',
        frozen=True,
    )


def _select_block(model: BaseModel, category: str, blocks: Dict[str, str]) -> None:
    """
    校验 provider 字段与配置块一致：
    选中的 provider 必须有配置块，其他 provider 的配置块不能出现。
    """
    provider = model.provider
    field_name = blocks[provider]
    alias = to_camel(field_name)

    if getattr(model, field_name) is None:
        raise ValueError(f"{category}.provider is '{provider}' but {alias} is missing")

    extra_blocks = [
        to_camel(name) for name in blocks.values()
        if name != field_name and getattr(model, name) is not None
    ]
    if extra_blocks:
        raise ValueError(
            f"only one {category} provider may be active; "
            f"provider is '{provider}' but found {', '.join(extra_blocks)} as well"
        )


# -------------------------------------------------------------------------
# 【分析服务】 至多启用一个
# -------------------------------------------------------------------------
class PlausibleAnalytics(_Block):
    plausible_data_domain: NonEmptyStr
    src: Optional[str] = None


class SimpleAnalytics(_Block):
    pass


class UmamiAnalytics(_Block):
    umami_website_id: NonEmptyStr
    src: Optional[str] = None


class PosthogAnalytics(_Block):
    posthog_project_api_key: NonEmptyStr
    api_host: Optional[str] = None


class GoogleAnalytics(_Block):
    google_analytics_id: NonEmptyStr


# 外部键名即 to_camel(字段名)
ANALYTICS_PROVIDERS = (
    'plausible_analytics',
    'simple_analytics',
    'umami_analytics',
    'posthog_analytics',
    'google_analytics',
)


class Analytics(_Block):
    plausible_analytics: Optional[PlausibleAnalytics] = None
    simple_analytics: Optional[SimpleAnalytics] = None
    umami_analytics: Optional[UmamiAnalytics] = None
    posthog_analytics: Optional[PosthogAnalytics] = None
    google_analytics: Optional[GoogleAnalytics] = None

    @model_validator(mode='after')
    def at_most_one_provider(self) -> 'Analytics':
        enabled = [to_camel(name) for name in ANALYTICS_PROVIDERS if getattr(self, name) is not None]
        if len(enabled) > 1:
            raise ValueError(f"only one analytics provider may be enabled, found: {', '.join(enabled)}")
        return self

    @property
    def active(self) -> Optional[Tuple[str, _Block]]:
        """返回 (外部键名, 配置块)；未配置分析服务时返回 None。"""
        for name in ANALYTICS_PROVIDERS:
            block = getattr(self, name)
            if block is not None:
                return to_camel(name), block
        return None


# -------------------------------------------------------------------------
# 【评论服务】 giscus / utterances / disqus
# -------------------------------------------------------------------------
class GiscusConfig(_Block):
    repo: NonEmptyStr
    repository_id: NonEmptyStr
    category: NonEmptyStr
    category_id: NonEmptyStr
    mapping: Literal['pathname', 'url', 'title'] = 'pathname'
    reactions: GiscusFlag = '1'
    metadata: GiscusFlag = '0'
    theme: NonEmptyStr = 'light'
    dark_theme: NonEmptyStr = 'transparent_dark'
    theme_url: str = Field(default='', alias='themeURL')
    lang: NonEmptyStr = 'en'

    @model_validator(mode='after')
    def custom_theme_needs_url(self) -> 'GiscusConfig':
        if self.theme == 'custom' and not self.theme_url.strip():
            raise ValueError("themeURL is required when theme is 'custom'")
        return self


class UtterancesConfig(_Block):
    repo: NonEmptyStr
    issue_term: Literal['pathname', 'url', 'title', 'og:title'] = 'pathname'
    label: Optional[str] = None
    theme: NonEmptyStr = 'github-light'
    dark_theme: NonEmptyStr = 'github-dark'


class DisqusConfig(_Block):
    shortname: NonEmptyStr


COMMENT_PROVIDERS = {
    'giscus': 'giscus_config',
    'utterances': 'utterances_config',
    'disqus': 'disqus_config',
}


class Comments(_Block):
    provider: Literal['giscus', 'utterances', 'disqus']
    giscus_config: Optional[GiscusConfig] = None
    utterances_config: Optional[UtterancesConfig] = None
    disqus_config: Optional[DisqusConfig] = None

    @model_validator(mode='after')
    def exactly_one_provider(self) -> 'Comments':
        _select_block(self, 'comments', COMMENT_PROVIDERS)
        return self

    @property
    def active(self) -> Tuple[str, _Block]:
        return self.provider, getattr(self, COMMENT_PROVIDERS[self.provider])


# -------------------------------------------------------------------------
# 【搜索服务】 kbar / algolia
# -------------------------------------------------------------------------
class KbarConfig(_Block):
    search_documents_path: NonEmptyStr


class AlgoliaConfig(_Block):
    app_id: NonEmptyStr
    api_key: NonEmptyStr
    index_name: NonEmptyStr


SEARCH_PROVIDERS = {
    'kbar': 'kbar_config',
    'algolia': 'algolia_config',
}


class Search(_Block):
    provider: Literal['kbar', 'algolia']
    kbar_config: Optional[KbarConfig] = None
    algolia_config: Optional[AlgoliaConfig] = None

    @model_validator(mode='after')
    def exactly_one_provider(self) -> 'Search':
        _select_block(self, 'search', SEARCH_PROVIDERS)
        return self

    @property
    def active(self) -> Tuple[str, _Block]:
        return self.provider, getattr(self, SEARCH_PROVIDERS[self.provider])


class Newsletter(_Block):
    provider: Literal['mailchimp', 'buttondown', 'convertkit', 'klaviyo', 'revue', 'emailoctopus']


# -------------------------------------------------------------------------
# 【站点元数据】
# -------------------------------------------------------------------------
SOCIAL_FIELDS = ('mastodon', 'github', 'twitter', 'facebook', 'youtube', 'linkedin')


class SiteMetadata(_Block):
    # 站点信息
    title: NonEmptyStr
    author: NonEmptyStr
    header_title: NonEmptyStr
    description: NonEmptyStr
    language: NonEmptyStr
    locale: NonEmptyStr
    theme: Literal['system', 'dark', 'light'] = 'system'
    site_url: NonEmptyStr
    site_repo: Optional[str] = None
    site_logo: Optional[str] = None
    social_banner: Optional[str] = None

    # 联系方式
    email: Optional[str] = None
    mastodon: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    youtube: Optional[str] = None
    linkedin: Optional[str] = None

    # 第三方服务
    analytics: Analytics = Field(default_factory=Analytics)
    newsletter: Optional[Newsletter] = None
    comments: Comments
    search: Search

    @field_validator('analytics', mode='before')
    @classmethod
    def empty_analytics(cls, value: Any) -> Any:
        # YAML 中 analytics 下全部被注释时解析为 None
        return {} if value is None else value

    @property
    def social_links(self) -> List[Tuple[str, str]]:
        """已填写的社交账号 (名称, 链接)，按固定顺序。"""
        return [(name, getattr(self, name)) for name in SOCIAL_FIELDS if getattr(self, name)]


# -------------------------------------------------------------------------
# 【加载与序列化】
# -------------------------------------------------------------------------
_ENV_PATTERN = re.compile(r"(\$)?\$\{(\w+)\}")


def expand_env(value: Any) -> Any:
    """
    递归替换字符串中的 ${NAME} 为环境变量值；变量未设置时报错。
    $${NAME} 表示字面量 ${NAME}，不做替换。
    """
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, str):
        def replace(match: 're.Match[str]') -> str:
            escaped, name = match.groups()
            if escaped:
                return f"${{{name}}}"
            if name not in os.environ:
                raise SiteMetadataError(f"environment variable {name} is not set")
            return os.environ[name]
        return _ENV_PATTERN.sub(replace, value)
    return value


def format_validation_error(exc: ValidationError) -> str:
    lines = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error['loc']) or '<root>'
        lines.append(f"  - {location}: {error['msg']}")
    return "invalid site metadata:\n" + "\n".join(lines)


def parse_site_metadata(data: Any) -> SiteMetadata:
    if not isinstance(data, dict):
        raise SiteMetadataError(f"site metadata must be a mapping, got {type(data).__name__}")
    try:
        return SiteMetadata.model_validate(data)
    except ValidationError as exc:
        raise SiteMetadataError(format_validation_error(exc)) from exc


def load_site_metadata(path: Optional[str] = None) -> SiteMetadata:
    """
    读取并校验站点元数据 YAML 文件。
    任何问题 (文件缺失、YAML 语法、字段校验) 都会抛出 SiteMetadataError。
    """
    path = path or config.SITE_METADATA_FILE
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise SiteMetadataError(f"site metadata file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise SiteMetadataError(f"error parsing YAML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        # 目录、无权限、非 UTF-8 编码
        raise SiteMetadataError(f"cannot read site metadata file {path}: {exc}") from exc

    try:
        return parse_site_metadata(expand_env(data or {}))
    except SiteMetadataError as exc:
        raise SiteMetadataError(f"{path}: {exc}") from exc


def dump_site_metadata(meta: SiteMetadata) -> Dict[str, Any]:
    """
    外部表示：camelCase 键，省略未填写的可选字段。
    值已经过环境变量替换；写回 YAML 再用 load_site_metadata 读取时，
    字面量 ${NAME} 需要写成 $${NAME}。
    """
    return meta.model_dump(by_alias=True, exclude_none=True)


def to_json(meta: SiteMetadata) -> str:
    return json.dumps(dump_site_metadata(meta), ensure_ascii=False, indent=4)


def from_json(text: str) -> SiteMetadata:
    try:
        return SiteMetadata.model_validate_json(text)
    except ValidationError as exc:
        raise SiteMetadataError(format_validation_error(exc)) from exc
