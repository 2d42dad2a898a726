from supabase import Client, create_client

from carrier_audit import config


def get_supabase() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        raise RuntimeError("Supabase credentials missing from .env")
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
