from serial_actions.cli import main

main()
