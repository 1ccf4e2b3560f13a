from ..config.settings import get_settings
from ..llm.errors import LLMError


def check_llm(client):
    try:
        js = client.list_models()
        # 简单判断模型名是否包含
        return {
            "llm_api": True,
            "model_listed": client.model in str(js),
            "fallback_model_listed": client.fallback_model in str(js),
        }
    except (LLMError, ValueError) as e:
        return {"llm_api": False, "error": str(e)}


def run_all(client, settings=None):
    settings = settings or get_settings()
    results = {}
    # 基础版本信息，放在最前便于快速读取
    results["api_version"] = settings.api_version
    results["llm"] = check_llm(client)
    # 配置快照（不回显密钥本身）
    results["config"] = {
        "llm_base_url": settings.llm_base_url,
        "llm_model": settings.llm_model,
        "llm_fallback_model": settings.fallback_model,
        "llm_api_key_set": bool(settings.llm_api_key),
        "llm_timeout": {"connect": settings.llm_connect_timeout, "read": settings.llm_read_timeout},
        "chat_context_max_chars": settings.chat_context_max_chars,
        "cards_count": settings.cards_count,
    }
    return results
