import brook
import os
import time


def main():

    client = brook.Client(api_key=os.environ['BROOK_API_KEY'], verbose=True,
                          storage=brook.FileStorage())

    client.on_connectivity_change(announce)
    client.connect()

    prices = client.channel('prices')
    prices.stream(show)

    while True:
        publish_prices(prices)
        time.sleep(60)


def publish_prices(prices):

    for metal in ('gold', 'silver', 'platinum'):
        try:
            prices.publish({'metal': metal, 'usd_per_gram': get_spot_value(metal)})
        except brook.NotConnected:
            # The client reconnects on its own; try again next time.
            print('not connected, skipping', metal)


def announce(status):
    print('connection is now', status)


def show(data, metadata):

    if metadata['replay']:
        prefix = 'replayed'
    else:
        prefix = 'live'

    print(prefix, metadata['offset'], data)


def get_spot_value(metal):
    ''' Stand-in for a real market data source.
    '''

    spot = dict()
    spot['gold'] = 74.10
    spot['silver'] = 0.93
    spot['platinum'] = 31.25

    return spot[metal]


if __name__ == '__main__':
    main()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
