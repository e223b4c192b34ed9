# generator.py - 读取站点元数据，渲染页面头部与第三方服务 (分析 / 评论 / 搜索) 的嵌入代码

import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import minify_html
from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader

import config
from metadata import SiteMetadata

# --- Jinja2 环境配置 ---
env = Environment(
    loader=FileSystemLoader(config.TEMPLATE_DIR),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True
)

# 各分析服务脚本的默认地址 (配置块中的 src / apiHost 可以覆盖)
ANALYTICS_DEFAULT_SRC = {
    'plausibleAnalytics': 'https://plausible.io/js/plausible.js',
    'simpleAnalytics': 'https://scripts.simpleanalyticscdn.com/latest.js',
    'umamiAnalytics': 'https://analytics.umami.is/script.js',
    'googleAnalytics': 'https://www.googletagmanager.com/gtag/js',
}
POSTHOG_DEFAULT_HOST = 'https://app.posthog.com'

DOCSEARCH_CDN = 'https://cdn.jsdelivr.net'


# --- 辅助函数：URL ---

def origin_of(url: str) -> str:
    """返回 URL 的 scheme://host 部分，用于 CSP；站内相对路径返回 'self'。"""
    parts = urlsplit(url)
    if not parts.netloc:
        return "'self'"
    if not parts.scheme:
        # 协议相对 URL (//host/path)
        return f"https://{parts.netloc}"
    return f"{parts.scheme}://{parts.netloc}"


def make_absolute_url(meta: SiteMetadata, path: Optional[str]) -> str:
    """将站内路径 (例如 /static/images/logo.png) 转为以 siteUrl 开头的绝对 URL。"""
    if not path:
        return ''
    if path.startswith(('http://', 'https://', '//')):
        return path
    return f"{meta.site_url.rstrip('/')}/{path.lstrip('/')}"


def repo_web_url(meta: SiteMetadata) -> str:
    """git@github.com:user/repo.git -> https://github.com/user/repo"""
    repo = meta.site_repo or ''
    if repo.startswith('git@'):
        host, _, path = repo[len('git@'):].partition(':')
        repo = f"https://{host}/{path}"
    if repo.endswith('.git'):
        repo = repo[:-4]
    return repo


def resolve_color_scheme(meta: SiteMetadata, prefers_dark: bool = False) -> str:
    """
    计算实际使用的配色。
    theme 为 system 时跟随访问环境的偏好，dark / light 则固定。
    """
    if meta.theme == 'system':
        return 'dark' if prefers_dark else 'light'
    return meta.theme


# --- 分析服务 ---

def analytics_context(meta: SiteMetadata) -> Optional[Dict[str, Any]]:
    """返回当前启用的分析服务及其原样的配置字段；未配置时返回 None。"""
    active = meta.analytics.active
    if active is None:
        return None
    provider, block = active
    return {'provider': provider, **block.model_dump(by_alias=True, exclude_none=True)}


def _analytics_script_src(provider: str, block: Any) -> str:
    if provider == 'posthogAnalytics':
        return f"{(block.api_host or POSTHOG_DEFAULT_HOST).rstrip('/')}/static/array.js"
    return getattr(block, 'src', None) or ANALYTICS_DEFAULT_SRC[provider]


def render_analytics(meta: SiteMetadata) -> str:
    """渲染分析服务的 script 标签；未配置分析服务时返回空字符串。"""
    active = meta.analytics.active
    if active is None:
        return ''
    provider, block = active
    template = env.get_template(f"{config.ANALYTICS_TEMPLATE_DIR}/{provider}.html")
    return template.render(
        block=block,
        src=_analytics_script_src(provider, block),
        api_host=getattr(block, 'api_host', None) or POSTHOG_DEFAULT_HOST,
    )


# --- 评论服务 ---

def comments_context(meta: SiteMetadata, prefers_dark: bool = False) -> Dict[str, Any]:
    """
    评论组件所需的数据。
    同时给出亮色和暗色主题，theme 为当前配色下实际使用的主题。
    """
    provider, block = meta.comments.active
    context: Dict[str, Any] = {
        'provider': provider,
        'config': block.model_dump(by_alias=True, exclude_none=True),
    }

    if provider == 'giscus':
        light_theme = block.theme_url if block.theme == 'custom' else block.theme
        dark_theme = block.dark_theme
    elif provider == 'utterances':
        light_theme = block.theme
        dark_theme = block.dark_theme
    else:
        # disqus 自行跟随页面配色
        light_theme = dark_theme = None

    context['light_theme'] = light_theme
    context['dark_theme'] = dark_theme
    context['theme'] = dark_theme if resolve_color_scheme(meta, prefers_dark) == 'dark' else light_theme
    if provider == 'disqus':
        context['embed_src'] = f"https://{block.shortname}.disqus.com/embed.js"
    return context


def render_comments(meta: SiteMetadata, prefers_dark: bool = False) -> str:
    provider, block = meta.comments.active
    context = comments_context(meta, prefers_dark)
    template = env.get_template(f"{config.COMMENTS_TEMPLATE_DIR}/{provider}.html")
    return template.render(block=block, **{k: v for k, v in context.items() if k != 'config'})


# --- 搜索服务 ---

def search_context(meta: SiteMetadata) -> Dict[str, Any]:
    """kbar 只拿到文档索引的相对路径；algolia 拿到远程索引的凭据。"""
    provider, block = meta.search.active
    return {'provider': provider, **block.model_dump(by_alias=True, exclude_none=True)}


def render_search(meta: SiteMetadata) -> str:
    provider, _ = meta.search.active
    template = env.get_template(f"{config.SEARCH_TEMPLATE_DIR}/{provider}.html")
    return template.render(
        search_config=search_context(meta),
        search_container_id=config.SEARCH_CONTAINER_ID,
    )


# --- Content Security Policy ---

def content_security_policy(meta: SiteMetadata) -> Dict[str, List[str]]:
    """收集当前启用的服务需要放行的来源。"""
    policy: Dict[str, List[str]] = {
        'default-src': ["'self'"],
        'script-src': ["'self'", "'unsafe-inline'"],
        'style-src': ["'self'", "'unsafe-inline'"],
        'img-src': ['*', 'blob:', 'data:'],
        'connect-src': ["'self'"],
        'frame-src': ["'self'"],
    }

    def allow(directive: str, *sources: str) -> None:
        for source in sources:
            if source not in policy[directive]:
                policy[directive].append(source)

    active = meta.analytics.active
    if active is not None:
        provider, block = active
        if provider == 'googleAnalytics':
            allow('script-src', origin_of(_analytics_script_src(provider, block)))
            allow('connect-src', 'https://www.google-analytics.com', 'https://*.analytics.google.com')
        elif provider == 'simpleAnalytics':
            allow('script-src', origin_of(_analytics_script_src(provider, block)))
            allow('connect-src', 'https://queue.simpleanalyticscdn.com')
        else:
            origin = origin_of(_analytics_script_src(provider, block))
            allow('script-src', origin)
            allow('connect-src', origin)

    provider, block = meta.comments.active
    if provider == 'giscus':
        allow('script-src', 'https://giscus.app')
        allow('frame-src', 'https://giscus.app')
        if block.theme == 'custom':
            allow('style-src', origin_of(block.theme_url))
    elif provider == 'utterances':
        allow('script-src', 'https://utteranc.es')
        allow('frame-src', 'https://utteranc.es')
    else:
        allow('script-src', f"https://{block.shortname}.disqus.com", 'https://c.disquscdn.com')
        allow('frame-src', 'https://disqus.com')

    provider, block = meta.search.active
    if provider == 'algolia':
        allow('script-src', DOCSEARCH_CDN)
        allow('style-src', DOCSEARCH_CDN)
        allow('connect-src', f"https://{block.app_id}-dsn.algolia.net", 'https://*.algolianet.com')

    return policy


def format_content_security_policy(policy: Dict[str, List[str]]) -> str:
    return '; '.join(f"{directive} {' '.join(sources)}" for directive, sources in policy.items())


# --- 页面渲染 ---

def render_head(meta: SiteMetadata, page_title: Optional[str] = None) -> str:
    """渲染 <head> 内的站点信息 (标题、描述、og 标签、图标)。"""
    color_scheme = {'system': 'light dark', 'dark': 'dark', 'light': 'light'}[meta.theme]
    template = env.get_template(config.HEAD_TEMPLATE)
    return template.render(
        meta=meta,
        page_title=page_title or meta.title,
        site_url=meta.site_url.rstrip('/'),
        logo_url=make_absolute_url(meta, meta.site_logo),
        banner_url=make_absolute_url(meta, meta.social_banner),
        og_locale=meta.locale.replace('-', '_'),
        color_scheme=color_scheme,
    )


def inject_integrations(page_html: str, meta: SiteMetadata, prefers_dark: bool = False) -> str:
    """
    使用 BeautifulSoup 向页面注入第三方服务：
    1. 分析脚本和搜索配置放入 <head>
    2. 评论组件放入 id="comments" 的元素 (不存在时追加到 <body> 末尾)
    """
    soup = BeautifulSoup(page_html, 'html.parser')

    head = soup.head
    if head is None:
        head = soup.new_tag('head')
        (soup.html or soup).insert(0, head)
    head_fragments = render_analytics(meta) + render_search(meta)
    head.append(BeautifulSoup(head_fragments, 'html.parser'))

    container = soup.find(id=config.COMMENTS_CONTAINER_ID)
    if container is None:
        container = soup.new_tag('section', attrs={'id': config.COMMENTS_CONTAINER_ID})
        (soup.body or soup.html or soup).append(container)
    container.clear()
    container.append(BeautifulSoup(render_comments(meta, prefers_dark), 'html.parser'))

    return str(soup)


def render_shell(meta: SiteMetadata, content_html: str = '', page_title: Optional[str] = None,
                 prefers_dark: bool = False) -> str:
    """渲染完整的页面骨架并注入第三方服务。"""
    template = env.get_template(config.BASE_TEMPLATE)
    html_content = template.render(
        meta=meta,
        head_html=render_head(meta, page_title),
        content_html=content_html,
        repo_url=repo_web_url(meta),
        current_year=datetime.now().year,
        search_container_id=config.SEARCH_CONTAINER_ID,
        comments_container_id=config.COMMENTS_CONTAINER_ID,
    )
    return inject_integrations(html_content, meta, prefers_dark)


def minify_html_content(html_content: str) -> str:
    """对生成的 HTML 内容进行最小化处理 (使用 minify_html)"""
    return minify_html.minify(
        html_content,
        keep_comments=False,
        minify_css=True,
        minify_js=True,
        keep_html_and_head_opening_tags=True,
    )


def write_output(output_path: str, content: str, minify: bool = False):
    """写入生成的文件，必要时先最小化。"""
    os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)
    if minify:
        content = minify_html_content(content)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(content)
    print(f"Generated: {output_path}")
