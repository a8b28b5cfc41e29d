from dotenv import load_dotenv

load_dotenv()

from cli import cli  # noqa: E402

if __name__ == "__main__":
    cli(obj={}, auto_envvar_prefix="AIXCL")
