from datadir.cli.main import main

main()
