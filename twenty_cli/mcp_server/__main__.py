from twenty_cli.mcp_server import main

main()
