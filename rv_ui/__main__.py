from rv_ui.cli import main

main()
